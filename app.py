# app.py
"""
NutraScore Sales Dashboard - Main Entry Point

Sign in / sign up, then a landing page that links the dashboard pages.

Version: 1.0.0
"""

import streamlit as st
from nutrascore.auth import get_auth_session
from nutrascore.db import check_db_connection, get_connection_pool_status, reset_db_engine
from nutrascore.storage import get_photo_storage, reset_photo_storage
import logging

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_NAME = "NutraScore Vendas"
APP_ICON = "📊"
APP_VERSION = "1.0.0"

PAGES = [
    ("📈 Dashboard", "KPIs do mês, ranking de vendedores, progresso da meta e vendas diárias."),
    ("🏢 Relatório da Empresa", "Metas, desafio e mega meta da empresa a partir dos lançamentos de venda."),
    ("🧾 Lançamento de Vendas", "Registrar, editar e excluir vendas."),
    ("👥 Vendedores", "Cadastro de vendedores e fotos (admin)."),
    ("💰 Faturamento", "Valores liberados e ATR por mês."),
    ("🎯 Metas", "Meta, desafio e mega meta por vendedor e mês."),
    ("👤 Relatório do Vendedor", "Metas, KPIs e evolução mensal de um vendedor."),
]

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .ns-title { font-size: 2.4rem; font-weight: 700; color: #059669; margin-bottom: 0.25rem; }
    .ns-subtitle { font-size: 1.05rem; color: #6b7280; margin-bottom: 1.5rem; }
    .ns-banner {
        background: linear-gradient(120deg, #047857 0%, #10b981 100%);
        color: #fff; padding: 1.75rem; border-radius: 0.75rem; margin-bottom: 1.5rem;
    }
    .ns-page-card {
        background: #f9fafb; padding: 1.1rem 1.4rem; border-radius: 0.5rem;
        border-left: 4px solid #10b981; margin-bottom: 0.75rem;
    }
    .ns-footer { text-align: center; color: #9ca3af; margin-top: 2.5rem; font-size: 0.85rem; }
</style>
""", unsafe_allow_html=True)

session = get_auth_session()
auth = session.auth


# ==================== SIGN IN / SIGN UP ====================

def render_sign_in():
    with st.form("login_form"):
        email = st.text_input("Email", placeholder="voce@empresa.com")
        password = st.text_input("Senha", type="password")

        if st.form_submit_button("🔑 Entrar", type="primary", use_container_width=True):
            if not email or not password:
                st.warning("Informe email e senha")
                return

            with st.spinner("Autenticando..."):
                success, result = auth.sign_in(email, password)

            if success:
                logger.info(f"Signed in from login page: {result['email']}")
                st.rerun()
            else:
                st.error(result.get("error", "Falha na autenticação"))


def render_sign_up():
    with st.form("signup_form", clear_on_submit=True):
        full_name = st.text_input("Nome")
        email = st.text_input("Email", key="signup_email")
        password = st.text_input("Senha", type="password", key="signup_password")

        if st.form_submit_button("Criar conta", use_container_width=True):
            success, result = auth.sign_up(email, password, full_name)
            if success:
                st.success("✅ Conta criada. Faça login para continuar.")
            else:
                st.error(result["error"])


def show_login_page():
    st.markdown(f'<p class="ns-title">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="ns-subtitle">Painel de desempenho comercial</p>', unsafe_allow_html=True)

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        return

    _, center, _ = st.columns([1, 2, 1])
    with center:
        login_tab, signup_tab = st.tabs(["🔐 Entrar", "📝 Criar conta"])
        with login_tab:
            render_sign_in()
        with signup_tab:
            render_sign_up()


# ==================== LANDING ====================

def render_system_status():
    """Pool and avatar storage health, with a reconnect action (admins only)"""
    pool_status = get_connection_pool_status()
    storage_ok = get_photo_storage().validate_connection()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("DB Status", pool_status.get("status", "OK"))
    col2.metric("Connections Used", pool_status.get("checked_out", 0))
    col3.metric("Available", pool_status.get("checked_in", 0))
    col4.metric("Avatar Storage", "OK" if storage_ok else "Unavailable")

    if st.button("🔄 Reconnect", help="Dispose the DB pool and the storage client"):
        reset_db_engine()
        reset_photo_storage()
        st.cache_data.clear()
        st.rerun()


def show_main_app():
    user = session.user

    with st.sidebar:
        st.markdown(f"### 👤 {user['full_name']}")
        if session.is_admin:
            st.success(f"🔓 {session.role}")
        else:
            st.info("👤 Acesso de vendedor")
        st.markdown("---")

        if st.button("🚪 Sair", use_container_width=True):
            auth.sign_out()
            st.rerun()

    st.markdown(f"""
    <div class="ns-banner">
        <h3>Bem-vindo, {user['full_name']}! 👋</h3>
        <div>Selecione um painel no menu lateral.</div>
    </div>
    """, unsafe_allow_html=True)

    for title, description in PAGES:
        st.markdown(
            f'<div class="ns-page-card"><strong>{title}</strong><br>'
            f'<span style="color: #6b7280;">{description}</span></div>',
            unsafe_allow_html=True
        )

    if session.is_admin:
        st.markdown("---")
        with st.expander("🔧 System Status (Admin Only)"):
            render_system_status()

    st.markdown(f'<div class="ns-footer">{APP_NAME} v{APP_VERSION}</div>', unsafe_allow_html=True)


def main():
    if session.is_authenticated:
        show_main_app()
    else:
        show_login_page()


if __name__ == "__main__":
    main()
