# nutrascore/sales_dashboard/charts.py
"""
Altair Chart Builders for the Sales Dashboard

All visualization components:
- KPI summary cards and goal blocks (using st.metric)
- Daily sales: current vs previous month, with goal line
- Salesperson ranking bars colored by achievement tier
- New vs returning customers donut
- Billing released vs ATR donut
- Seller monthly trend and delta badges
"""

import logging
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from .constants import (
    CHART_HEIGHT,
    CHART_WIDTH,
    COLORS,
    CURRENCY_SYMBOL,
    GOAL_STATUS_LABELS,
    PIE_CHART_HEIGHT,
    PIE_CHART_WIDTH,
    TIER_LABELS,
)
from .metrics import CustomerMix, DashboardMetrics, PeriodDelta
from .models import BillingSummary, KPISnapshot
from .periods import period_label

logger = logging.getLogger(__name__)


def format_brl(value: Optional[float], decimals: int = 2) -> str:
    """Format as Brazilian currency: 1234.5 -> 'R$ 1.234,50'."""
    if value is None:
        return "N/A"
    formatted = f"{value:,.{decimals}f}".replace(',', '_').replace('.', ',').replace('_', '.')
    return f"{CURRENCY_SYMBOL} {formatted}"


def format_percent(value: Optional[float]) -> str:
    return "N/A" if value is None or pd.isna(value) else f"{value:.0f}%"


def badge_html(text: str, color: str) -> str:
    """Rounded inline badge for st.markdown(..., unsafe_allow_html=True)."""
    return (
        f'<span style="background-color: {color}; color: #ffffff; padding: 0.15rem 0.6rem; '
        f'border-radius: 1rem; font-size: 0.8rem; font-weight: 600;">{text}</span>'
    )


def delta_badge_html(delta: Optional[PeriodDelta], suffix: str = "vs mês anterior") -> str:
    """Green badge for growth, red for a drop, gray when unchanged."""
    if delta is None:
        return ""
    if delta.is_positive:
        color = COLORS['delta_positive']
    elif (delta.percent or 0) < 0:
        color = COLORS['delta_negative']
    else:
        color = COLORS['below_goal']
    return badge_html(f"{delta.label()} {suffix}", color)


class DashboardCharts:
    """
    Chart builders for the sales dashboard.

    All methods are static - can be called without instantiation.

    Usage:
        DashboardCharts.render_kpi_cards(kpis)
        chart = DashboardCharts.build_daily_sales_chart(rows)
        st.altair_chart(chart, use_container_width=True)
    """

    # =========================================================================
    # KPI CARDS (Using st.metric)
    # =========================================================================

    @staticmethod
    def render_kpi_cards(kpis: KPISnapshot, sales_delta: PeriodDelta = None):
        """Total sold, goal progress, clients and average ticket."""
        col1, col2, col3, col4 = st.columns(4)

        with col1:
            st.metric(
                label="Total Vendido",
                value=format_brl(kpis.total_sold, 0),
                delta=sales_delta.label() if sales_delta else None,
            )

        with col2:
            pct = DashboardMetrics.goal_percentage(kpis.total_sold, kpis.total_goal)
            st.metric(
                label="Meta",
                value=format_percent(pct),
                help=f"{format_brl(kpis.total_sold, 0)} de {format_brl(kpis.total_goal, 0)}",
            )
            st.progress(int(DashboardMetrics.progress_bar_width(kpis.total_sold, kpis.total_goal)))

        with col3:
            st.metric(
                label="Clientes",
                value=f"{kpis.total_clients:,}".replace(',', '.'),
                delta=f"{kpis.new_clients} novos",
                delta_color="off",
            )

        with col4:
            st.metric(label="Ticket Médio", value=format_brl(kpis.global_avg_ticket))

    @staticmethod
    def render_goal_block(title: str, achieved: float, goal: float):
        """One company goal: percentage, amounts, clamped bar and status text."""
        pct = DashboardMetrics.goal_percentage(achieved, goal)
        status = DashboardMetrics.goal_status(achieved, goal)

        with st.container(border=True):
            st.metric(label=title, value=format_percent(pct))
            goal_text = format_brl(goal, 0) if goal and goal > 0 else "N/A"
            st.caption(f"{format_brl(achieved, 0)} / {goal_text}")
            st.progress(int(DashboardMetrics.progress_bar_width(achieved, goal)))
            st.caption(f"**{GOAL_STATUS_LABELS[status]}**")

    @staticmethod
    def render_company_metrics(company: Dict[str, Any]):
        """Company report header: totals plus goal / challenge / mega blocks."""
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric(
                "Vendas Totais",
                format_brl(company['total_sales'], 0),
                delta=company['sales_delta'].label(),
            )
        with col2:
            st.metric("Número de Vendas", company['number_of_sales'])
        with col3:
            st.metric("Ticket Médio", format_brl(company['average_ticket']))
        with col4:
            st.metric("Vendedores Ativos", company['active_sellers'])

        col1, col2, col3 = st.columns(3)
        with col1:
            DashboardCharts.render_goal_block("Meta da Empresa", company['total_sales'], company['company_goal'])
        with col2:
            DashboardCharts.render_goal_block(
                "Desafio", company['total_sales'], company['company_challenge_total']
            )
            st.caption(f"{company['sellers_meeting_challenge']} vendedor(es) atingiram o desafio")
        with col3:
            DashboardCharts.render_goal_block(
                "Mega Meta", company['total_sales'], company['company_mega_total']
            )
            st.caption(f"{company['sellers_meeting_mega']} vendedor(es) atingiram a mega meta")

    # =========================================================================
    # DAILY SALES
    # =========================================================================

    @staticmethod
    def build_daily_sales_chart(
        rows: List[Dict[str, Any]],
        current_label: str = "Mês Atual",
        previous_label: str = "Mês Anterior",
        title: str = "📈 Vendas Diárias"
    ) -> alt.Chart:
        """
        Line chart of aligned daily series (see DashboardMetrics.align_daily_series).

        Days missing from a series are left out of that line, so lines
        connect across gaps instead of dropping to zero.
        """
        if not rows:
            return DashboardCharts._empty_chart("Sem vendas diárias para o período")

        df = pd.DataFrame(rows)
        long_df = df.melt(
            id_vars=['day'],
            value_vars=['current', 'previous'],
            var_name='series',
            value_name='sales'
        ).dropna(subset=['sales'])
        long_df['series'] = long_df['series'].map({'current': current_label, 'previous': previous_label})

        color_scale = alt.Scale(
            domain=[current_label, previous_label],
            range=[COLORS['current_period'], COLORS['previous_period']]
        )

        lines = alt.Chart(long_df).mark_line(point=True, strokeWidth=2).encode(
            x=alt.X('day:O', title='Dia'),
            y=alt.Y('sales:Q', title=f'Vendas ({CURRENCY_SYMBOL})', axis=alt.Axis(format='~s')),
            color=alt.Color('series:N', scale=color_scale, legend=alt.Legend(orient='bottom', title=None)),
            tooltip=[
                alt.Tooltip('day:O', title='Dia'),
                alt.Tooltip('series:N', title='Série'),
                alt.Tooltip('sales:Q', title='Vendas', format=',.2f')
            ]
        )

        layers = [lines]

        goal_df = df[['day', 'goal']].dropna(subset=['goal'])
        if not goal_df.empty:
            goal_line = alt.Chart(goal_df).mark_line(
                strokeDash=[6, 4],
                color=COLORS['goal']
            ).encode(
                x=alt.X('day:O'),
                y=alt.Y('goal:Q'),
                tooltip=[alt.Tooltip('goal:Q', title='Meta', format=',.2f')]
            )
            layers.append(goal_line)

        return alt.layer(*layers).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # RANKING
    # =========================================================================

    @staticmethod
    def build_ranking_chart(ranking_df: pd.DataFrame, title: str = "🏆 Ranking de Vendedores") -> alt.Chart:
        """Horizontal bars in ranking order, colored by achievement tier."""
        if ranking_df.empty:
            return DashboardCharts._empty_chart("Sem vendedores para o período")

        df = ranking_df.copy()
        df['tier_label'] = df['tier'].map(TIER_LABELS)
        df['goal_label'] = df['goal_percentage'].apply(format_percent)

        tiers = ['mega', 'challenge', 'goal', 'below']
        color_scale = alt.Scale(
            domain=[TIER_LABELS[t] for t in tiers],
            range=[COLORS['mega'], COLORS['challenge'], COLORS['goal_reached'], COLORS['below_goal']]
        )

        bars = alt.Chart(df).mark_bar().encode(
            x=alt.X('sold:Q', title=f'Vendido ({CURRENCY_SYMBOL})', axis=alt.Axis(format='~s')),
            y=alt.Y('name:N', sort=alt.EncodingSortField(field='rank', order='ascending'), title=None),
            color=alt.Color('tier_label:N', scale=color_scale, legend=alt.Legend(orient='bottom', title=None)),
            tooltip=[
                alt.Tooltip('rank:O', title='#'),
                alt.Tooltip('name:N', title='Vendedor'),
                alt.Tooltip('sold:Q', title='Vendido', format=',.2f'),
                alt.Tooltip('goal:Q', title='Meta', format=',.2f'),
                alt.Tooltip('goal_label:N', title='% Meta'),
            ]
        )

        text = alt.Chart(df).mark_text(align='left', dx=4, fontSize=10).encode(
            x=alt.X('sold:Q'),
            y=alt.Y('name:N', sort=alt.EncodingSortField(field='rank', order='ascending')),
            text='goal_label:N',
            color=alt.value(COLORS['text_dark'])
        )

        return alt.layer(bars, text).properties(
            width=CHART_WIDTH,
            height=max(len(df) * 32, 120),
            title=title
        )

    # =========================================================================
    # MONTHLY TREND
    # =========================================================================

    @staticmethod
    def build_monthly_trend_chart(monthly_df: pd.DataFrame, title: str = "📆 Evolução Mensal") -> alt.Chart:
        """Monthly sales area with the goal of each month (see DashboardMetrics.monthly_totals)."""
        if monthly_df.empty or monthly_df['total'].sum() <= 0:
            return DashboardCharts._empty_chart("Sem vendas nos últimos meses")

        df = monthly_df.copy()
        df['label'] = df['month_year'].apply(period_label)
        order = list(df['label'])

        area = alt.Chart(df).mark_area(
            line={'color': COLORS['sales']},
            color=COLORS['sales'],
            opacity=0.3
        ).encode(
            x=alt.X('label:O', sort=order, title=None),
            y=alt.Y('total:Q', title=f'Vendas ({CURRENCY_SYMBOL})', axis=alt.Axis(format='~s')),
            tooltip=[
                alt.Tooltip('label:O', title='Mês'),
                alt.Tooltip('total:Q', title='Vendas', format=',.2f'),
                alt.Tooltip('count:Q', title='Vendas (qtd)'),
                alt.Tooltip('new_customers:Q', title='Clientes novos'),
            ]
        )

        layers = [area]

        goal_df = df.dropna(subset=['goal'])
        if not goal_df.empty:
            goal_line = alt.Chart(goal_df).mark_line(
                strokeDash=[6, 4],
                point=True,
                color=COLORS['goal']
            ).encode(
                x=alt.X('label:O', sort=order),
                y=alt.Y('goal:Q'),
                tooltip=[alt.Tooltip('goal:Q', title='Meta', format=',.2f')]
            )
            layers.append(goal_line)

        return alt.layer(*layers).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

    # =========================================================================
    # DONUTS
    # =========================================================================

    @staticmethod
    def build_customer_mix_chart(mix: CustomerMix, title: str = "👥 Clientes") -> alt.Chart:
        if mix.total <= 0:
            return DashboardCharts._empty_chart("Sem clientes no período")

        df = pd.DataFrame({
            'type': ['Novos', 'Recorrentes'],
            'count': [mix.new, mix.returning],
        })
        return DashboardCharts._donut(
            df, 'type', 'count',
            [COLORS['new_clients'], COLORS['returning_clients']],
            title
        )

    @staticmethod
    def build_billing_chart(summary: Optional[BillingSummary], title: str = "💰 Faturamento") -> alt.Chart:
        if summary is None or summary.total_amount <= 0:
            return DashboardCharts._empty_chart("Sem faturamento no período")

        df = pd.DataFrame({
            'type': ['Liberado', 'ATR'],
            'amount': [summary.released_amount, summary.atr_amount],
        })
        return DashboardCharts._donut(
            df, 'type', 'amount',
            [COLORS['sales'], COLORS['previous_period']],
            title
        )

    @staticmethod
    def _donut(df: pd.DataFrame, category: str, value: str, colors: List[str], title: str) -> alt.Chart:
        return alt.Chart(df).mark_arc(innerRadius=60).encode(
            theta=alt.Theta(f'{value}:Q'),
            color=alt.Color(
                f'{category}:N',
                scale=alt.Scale(domain=list(df[category]), range=colors),
                legend=alt.Legend(orient='bottom', title=None)
            ),
            tooltip=[
                alt.Tooltip(f'{category}:N'),
                alt.Tooltip(f'{value}:Q', format=',.0f')
            ]
        ).properties(
            width=PIE_CHART_WIDTH,
            height=PIE_CHART_HEIGHT,
            title=title
        )

    @staticmethod
    def _empty_chart(message: str = "No data available") -> alt.Chart:
        """Create an empty chart with a message."""
        return alt.Chart(pd.DataFrame({'note': [message]})).mark_text(
            text=message,
            fontSize=16,
            color=COLORS['text_light']
        ).properties(
            width=CHART_WIDTH,
            height=200
        )
