import uuid

import pytest
from botocore.exceptions import ClientError
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from nutrascore.storage import SellerPhotoStorage
from nutrascore.sales_dashboard.history import HistoryLog
from nutrascore.sales_dashboard.mutations import DashboardMutations
from nutrascore.sales_dashboard.queries import DashboardQueries
from nutrascore.sales_dashboard.tables import create_tables

BUCKET = 'seller-avatars'
PUBLIC_BASE_URL = 'https://storage.example.com/public'


def make_engine(with_tables: bool = True):
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    if with_tables:
        create_tables(engine)
    return engine


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls used by SellerPhotoStorage."""

    def __init__(self, put_failures: int = 0):
        self.objects = {}
        self.put_failures = put_failures
        self.put_calls = 0

    def _error(self, code, operation):
        return ClientError({'Error': {'Code': code, 'Message': f'{operation} failed'}}, operation)

    def put_object(self, Bucket, Key, Body, ContentType, CacheControl):
        self.put_calls += 1
        if self.put_failures > 0:
            self.put_failures -= 1
            raise self._error('InternalError', 'PutObject')
        self.objects[(Bucket, Key)] = {'body': Body, 'content_type': ContentType}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise self._error('404', 'HeadObject')
        return {}

    def head_bucket(self, Bucket):
        if Bucket != BUCKET:
            raise self._error('404', 'HeadBucket')
        return {}

    def keys(self):
        return [key for (_, key) in self.objects]


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch):
    monkeypatch.setattr('nutrascore.storage.time.sleep', lambda seconds: None)


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def history(engine):
    return HistoryLog(engine=engine, enabled=True)


@pytest.fixture
def queries(engine):
    return DashboardQueries(engine=engine)


@pytest.fixture
def mutations(engine, history):
    return DashboardMutations(engine=engine, history=history)


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def photo_storage(s3):
    return SellerPhotoStorage(s3_client=s3, bucket_name=BUCKET, public_base_url=PUBLIC_BASE_URL)


@pytest.fixture
def insert_row(engine):
    """Insert a raw row, generating its id when missing; returns the id."""
    def insert(table, **row):
        row.setdefault('id', str(uuid.uuid4()))
        columns = ', '.join(row)
        placeholders = ', '.join(f":{c}" for c in row)
        with engine.begin() as conn:
            conn.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"), row)
        return row['id']
    return insert


@pytest.fixture
def count_rows(engine):
    def count(table, where: str = "1 = 1", **params):
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table} WHERE {where}"), params).scalar()
    return count
