import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from core.auth import AuthenticatedUser, authenticate
from core.charts import grouped_amount_chart
from core.config import get_settings
from core.data import format_inr, group_totals, load_dashboard_records, paginate, prepare_context, summary_totals, table_columns
from core.errors import AuthError
from core.filters import (
    ALL,
    CHART_LIMIT_ALL,
    CHART_LIMIT_TOP,
    STATUS_BASECAT,
    STATUS_BEATWISE,
    DashboardFilters,
    clear_filters,
    select_consignee,
)
from core.normalize import SourceKind
from core.session import USER_KEY, JsonFileBackend, SessionStore
from core.sheets import MASTER_SHEET, fetch_sheet

logging.basicConfig(level=logging.INFO)
alt.data_transformers.disable_max_rows()

settings = get_settings()

FILTER_STATE_KEY = "dashboard_filters"
PAGE_STATE_KEY = "table_page"
RECORDS_STATE_KEY = "dashboard_records"

GROUP_LABELS = {STATUS_BEATWISE: "Account Beat", STATUS_BASECAT: "Base Cat"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #7c3aed;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: DashboardFilters) -> str:
    chips = [
        f"Consignee: {filters.consignee if filters.consignee != ALL else 'All'}",
        f"Account: {filters.account_name if filters.account_name != ALL else 'All'}",
        f"Employee: {filters.employee if filters.employee != ALL else 'All'}",
        f"Year: {filters.year if filters.year != ALL else 'All'}",
        f"Month: {filters.month if filters.month != ALL else 'All'}",
        f"Status: {filters.status}",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def get_store() -> SessionStore:
    if "session_store" not in st.session_state:
        store = SessionStore(
            JsonFileBackend(settings.session_path),
            default_company_name=settings.default_company_name,
            default_logo_url=settings.default_logo_url,
        )
        store.load()
        store.subscribe(on_session_change)
        st.session_state["session_store"] = store
    return st.session_state["session_store"]


def reset_dashboard_state():
    for key in (FILTER_STATE_KEY, PAGE_STATE_KEY, RECORDS_STATE_KEY):
        st.session_state.pop(key, None)


def on_session_change(key: str, value):
    # Filters and loaded rows belong to whoever was signed in.
    if key == USER_KEY:
        reset_dashboard_state()


def select_option(label: str, options: List[str], current: str, all_label: str) -> str:
    choices = [ALL] + options
    index = choices.index(current) if current in choices else 0
    return st.selectbox(
        label,
        choices,
        index=index,
        format_func=lambda v: all_label if v == ALL else v,
    )


# ---------- Login page ----------
def render_login_page(store: SessionStore):
    inject_base_styles()
    left, right = st.columns([1, 1])
    with left:
        if store.logo_url:
            st.image(store.logo_url, use_container_width=True)
        st.markdown(f"## {store.company_name}")
    with right:
        st.markdown("### Welcome back")
        st.caption("Sign in with your ID and password to continue.")
        with st.form("login"):
            username = st.text_input("ID", placeholder="Enter your username")
            password = st.text_input("Password", type="password", placeholder="Enter your password")
            submitted = st.form_submit_button("Sign In", use_container_width=True)
        if submitted:
            with st.spinner("Signing in..."):
                try:
                    user = authenticate(
                        username,
                        password,
                        fetch_users=lambda: fetch_sheet(MASTER_SHEET, api_base_url=settings.api_base_url),
                    )
                except AuthError as exc:
                    st.error(f"Login Failed: {exc}")
                else:
                    welcome = f"Welcome Admin to {store.company_name}!" if user.id == "admin" else f"Welcome {user.name}!"
                    st.toast(welcome)
                    store.login(user)
                    st.rerun()

        with st.expander("Admin settings", expanded=False):
            company_name = st.text_input("Company Name", value=store.company_name)
            logo_url = st.text_input("Logo URL", value=store.logo_url)
            if st.button("Save settings"):
                store.update_branding(company_name=company_name, logo_url=logo_url)
                st.success("Settings saved.")
                st.rerun()


# ---------- Dashboard ----------
def load_records(source: SourceKind) -> pd.DataFrame:
    if RECORDS_STATE_KEY not in st.session_state:
        with st.spinner("Loading data..."):
            st.session_state[RECORDS_STATE_KEY] = load_dashboard_records(source, api_base_url=settings.api_base_url)
    return st.session_state[RECORDS_STATE_KEY]


def render_header(store: SessionStore, user: AuthenticatedUser, filters: DashboardFilters):
    inject_base_styles()
    c1, c2, c3 = st.columns([1, 6, 3])
    with c1:
        if store.logo_url:
            st.image(store.logo_url, width=64)
    with c2:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{store.company_name} / Dashboard</div>"
            f"<div class='page-title'>Micropartner Dashboard</div></div>",
            unsafe_allow_html=True,
        )
    with c3:
        st.caption(f"Signed in as **{user.name}** ({user.role})")
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            st.session_state.pop(RECORDS_STATE_KEY, None)
            st.rerun()
        if btn_cols[1].button("Logout"):
            store.logout()
            st.rerun()
    st.markdown(f"<div class='chip-row'>{format_filter_summary(filters)}</div>", unsafe_allow_html=True)


def render_filters(user: AuthenticatedUser, filters: DashboardFilters, options: Dict[str, List[str]]) -> DashboardFilters:
    with st.sidebar:
        st.markdown("### Filter Data")
        if st.button("Reset All"):
            filters = clear_filters(filters)
            st.session_state[FILTER_STATE_KEY] = filters
            st.session_state[PAGE_STATE_KEY] = 1
            st.rerun()

        if user.is_admin:
            consignee = select_option("Consignee", options["consignee"], filters.consignee, "All Consignees")
            if consignee != filters.consignee:
                filters = select_consignee(filters, consignee)
                st.session_state[FILTER_STATE_KEY] = filters
                st.session_state[PAGE_STATE_KEY] = 1
                st.rerun()
        else:
            st.markdown(f"**Consignee**  \n{user.name}")

        account_name = select_option("Account Name", options["account_name"], filters.account_name, "All Accounts")
        employee = filters.employee
        if user.is_admin:
            employee = select_option("Employee", options["employee"], filters.employee, "All Employees")
        status = st.selectbox(
            "Status",
            [STATUS_BEATWISE, STATUS_BASECAT],
            index=[STATUS_BEATWISE, STATUS_BASECAT].index(filters.status),
        )
        year = select_option("Year", options["year"], filters.year, "All Years")
        month = select_option("Month", options["month"], filters.month, "All Months")

    updated = DashboardFilters(
        year=year,
        month=month,
        employee=employee,
        consignee=filters.consignee,
        account_name=account_name,
        status=status,
        chart_limit=filters.chart_limit,
    )
    if updated != filters:
        st.session_state[PAGE_STATE_KEY] = 1
    st.session_state[FILTER_STATE_KEY] = updated
    return updated


def render_summary_cards(filtered: pd.DataFrame):
    summary = summary_totals(filtered)
    cols = st.columns(3)
    cols[0].metric("Total Amount", format_inr(summary.total_amount), help="Filtered Data")
    cols[1].metric("Total Records", f"{summary.record_count:,}", help="Active Entries")
    cols[2].metric("Average Amount", format_inr(summary.average_amount), help="Per Record")


def render_chart(filtered: pd.DataFrame, filters: DashboardFilters):
    with card(f"{filters.status} Analysis", actions="Total amount by group"):
        limit = st.selectbox(
            "Show",
            [CHART_LIMIT_TOP, CHART_LIMIT_ALL],
            index=[CHART_LIMIT_TOP, CHART_LIMIT_ALL].index(filters.chart_limit),
            format_func=lambda v: "Top 10" if v == CHART_LIMIT_TOP else "All Data",
        )
        if limit != filters.chart_limit:
            st.session_state[FILTER_STATE_KEY] = replace(filters, chart_limit=limit)
        groups = group_totals(filtered, filters.status, limit)
        if not groups:
            st.info("No data available for chart. Try adjusting your filters.")
            return
        st.altair_chart(grouped_amount_chart(groups, filters.status), use_container_width=True)


def render_table(filtered: pd.DataFrame, filters: DashboardFilters):
    with card("Data Records", actions=f"{len(filtered)} Records"):
        if filtered.empty:
            st.info("No data found. Try adjusting your filters.")
            return
        page = paginate(filtered, st.session_state.get(PAGE_STATE_KEY, 1))
        st.session_state[PAGE_STATE_KEY] = page.page
        cols = table_columns(filters.status)
        view = page.rows[cols].copy()
        view["total_amt"] = view["total_amt"].apply(format_inr)
        view.columns = ["Year", "Month", "Account Name", GROUP_LABELS[filters.status], "Total Amount"]
        st.dataframe(view, hide_index=True, use_container_width=True)

        if page.total_pages > 1:
            c1, c2, c3, c4 = st.columns([4, 1, 2, 1])
            c1.caption(f"Showing {page.start + 1}-{page.end} of {page.total}")
            if c2.button("Previous", disabled=page.page == 1):
                st.session_state[PAGE_STATE_KEY] = page.page - 1
                st.rerun()
            c3.caption(f"Page {page.page} of {page.total_pages}")
            if c4.button("Next", disabled=page.page == page.total_pages):
                st.session_state[PAGE_STATE_KEY] = page.page + 1
                st.rerun()


def render_dashboard(store: SessionStore, user: AuthenticatedUser):
    records = load_records(SourceKind.CANCEL_ORDER)
    filters: DashboardFilters = st.session_state.get(FILTER_STATE_KEY, DashboardFilters())

    ctx = prepare_context(filters, user, records)
    filters = render_filters(user, filters, ctx["options"])
    ctx = prepare_context(filters, user, records)
    filtered = ctx["filtered"]

    render_header(store, user, filters)
    render_summary_cards(filtered)
    render_chart(filtered, filters)
    render_table(filtered, filters)
    st.caption(f"© {store.company_name}")


# ---------- UI setup ----------
st.set_page_config(page_title="Micropartner Dashboard", layout="wide")
inject_base_styles()

session_store = get_store()
if session_store.user is None:
    render_login_page(session_store)
else:
    render_dashboard(session_store, session_store.user)
