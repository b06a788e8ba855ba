# frontend/app.py
# Xotorkota-Prohori - community flood response
#
# Run from repo root: streamlit run frontend/app.py
# Or from frontend folder: streamlit run app.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import streamlit as st

try:
    from frontend.auth import get_app_state, get_current_user, init_auth_state, is_authenticated, resolve_identity
    from frontend.config import IS_DEV, LIVE_REFRESH_SECONDS
    from frontend.pages import (
        PAGES,
        AlertsPage,
        DashboardPage,
        LoginPage,
        RecordForm,
        ResourcesPage,
        SignupPage,
        SummarizePage,
        Summarizer,
    )
    from frontend.records import (
        ALERT_STATUSES,
        AVAILABILITIES,
        SEVERITIES,
        URGENCIES,
        Record,
        display_label,
    )
    from frontend.view_sync import AppState, PageController
except ModuleNotFoundError:
    from auth import get_app_state, get_current_user, init_auth_state, is_authenticated, resolve_identity
    from config import IS_DEV, LIVE_REFRESH_SECONDS
    from pages import (
        PAGES,
        AlertsPage,
        DashboardPage,
        LoginPage,
        RecordForm,
        ResourcesPage,
        SignupPage,
        SummarizePage,
        Summarizer,
    )
    from records import (
        ALERT_STATUSES,
        AVAILABILITIES,
        SEVERITIES,
        URGENCIES,
        Record,
        display_label,
    )
    from view_sync import AppState, PageController


st.set_page_config(page_title="Xotorkota-Prohori", page_icon="🌊", layout="wide")

ss = st.session_state

NAV_SIGNED_IN = [
    ("Dashboard", "dashboard"),
    ("Flood Alerts", "alerts"),
    ("Resources", "resources"),
    ("Summarize", "summarize"),
]
NAV_SIGNED_OUT = [
    ("Login", "login"),
    ("Sign Up", "signup"),
]

# --------------------------------------------------------------------
# Formatting helpers
# --------------------------------------------------------------------

LEVEL_COLORS = {"high": "red", "medium": "orange", "low": "green"}


def badge(value: str, color: str) -> str:
    return f":{color}[{display_label(value)}]"


def level_badge(value: str) -> str:
    return badge(value, LEVEL_COLORS.get(value, "gray"))


def status_badge(value: str) -> str:
    return badge(value, "red" if value == "ongoing" else "green")


def availability_badge(value: str) -> str:
    return badge(value, "green" if value == "immediate" else "orange")


def format_timestamp(ts: str) -> str:
    try:
        return datetime.fromisoformat(ts).strftime("%d %b %Y, %H:%M UTC")
    except ValueError:
        return ts


def records_frame(records: Iterable[Record], columns: Dict[str, str]) -> pd.DataFrame:
    """Records -> display table. `columns` maps field name to header."""
    rows: List[Dict[str, Any]] = []
    for record in records:
        data = record.model_dump()
        row = {}
        for field, header in columns.items():
            value = data.get(field)
            if field == "timestamp":
                value = format_timestamp(value)
            elif isinstance(value, str) and field not in ("item", "location", "contact"):
                value = display_label(value)
            row[header] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=list(columns.values()))


# --------------------------------------------------------------------
# Shell: sidebar, notifications, route switching
# --------------------------------------------------------------------

def render_sidebar(app: AppState) -> None:
    with st.sidebar:
        st.title("🌊 Xotorkota-Prohori")
        st.caption("Community flood response for Guwahati, Assam")
        st.markdown("---")

        identity = app.identity
        if identity.loading:
            st.info("Loading User...")
            return

        signed_in = is_authenticated()
        items = NAV_SIGNED_IN if signed_in else NAV_SIGNED_OUT
        for label, route in items:
            is_current = app.route == route
            if st.button(label, key=f"nav_{route}", use_container_width=True,
                         type="primary" if is_current else "secondary"):
                if not is_current:
                    app.navigate(route)
                    st.rerun()

        if signed_in:
            st.markdown("---")
            st.caption(f"Signed in as {get_current_user().get('email')}")
            if st.button("Logout", key="nav_logout", use_container_width=True):
                identity.sign_out()
                st.rerun()


def render_notifications(app: AppState) -> None:
    for notification in list(app.notifications):
        cols = st.columns([12, 1])
        with cols[0]:
            show = getattr(st, notification.level, st.info)
            show(notification.message)
        with cols[1]:
            if st.button("✕", key=f"dismiss_{notification.id}", help="Dismiss"):
                app.dismiss(notification.id)
                st.rerun()


def switch_page(app: AppState) -> Optional[PageController]:
    """
    Keep exactly one mounted controller: the one for app.route.
    Returns None for unknown routes.
    """
    current: Optional[PageController] = ss.get("page_controller")
    if current is not None and current.route == app.route and current.mounted:
        return current

    if current is not None:
        current.unmount()
        ss["page_controller"] = None

    page_cls = PAGES.get(app.route)
    if page_cls is None:
        return None

    page = page_cls(app)
    ss["page_controller"] = page
    page.mount()
    if IS_DEV:
        print(f"[VIEW] Mounted {app.route} (status={page.view_status})")
    return page


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def live_refresh() -> None:
    """Drain deliveries and job results posted by background threads."""
    app = get_app_state()
    if app.dispatcher.run_pending():
        st.rerun()


# --------------------------------------------------------------------
# Shared widgets
# --------------------------------------------------------------------

def render_summarizer(summarizer: Summarizer, title: str) -> None:
    st.subheader(title)
    reports = st.text_area(
        "Flood reports",
        value=summarizer.reports,
        height=200,
        placeholder="Paste community flood reports here, one per line...",
    )
    language = None
    if summarizer.languages:
        language = st.selectbox(
            "Summary language",
            summarizer.languages,
            index=summarizer.languages.index(summarizer.language),
        )

    label = "Generating..." if summarizer.busy else "Generate Summary"
    if st.button(label, disabled=summarizer.busy, type="primary"):
        summarizer.summarize(reports, language)
        st.rerun()

    if summarizer.busy:
        st.info("Generating summary...")
    if summarizer.error:
        st.error(summarizer.error)
    if summarizer.summary:
        st.markdown("**Summary**")
        st.text(summarizer.summary)


def render_form_error(form: RecordForm) -> None:
    if form.error:
        st.error(form.error)


# --------------------------------------------------------------------
# Pages
# --------------------------------------------------------------------

def render_dashboard(page: DashboardPage) -> None:
    st.header("Dashboard")
    render_summarizer(page.summarizer, "AI Flood Report Summarizer")
    st.markdown("---")

    alerts, requests, offers = (page.lists[c] for c in page.collections)
    cols = st.columns(3)
    with cols[0]:
        st.subheader("Recent Flood Alerts")
        if not alerts.items:
            st.caption("No flood alerts reported yet.")
        else:
            st.dataframe(
                records_frame(alerts, {"location": "Location", "status": "Status",
                                       "severity": "Severity", "timestamp": "Reported"}),
                hide_index=True, use_container_width=True,
            )
    with cols[1]:
        st.subheader("Resource Needs")
        if not requests.items:
            st.caption("No resource requests yet.")
        else:
            st.dataframe(
                records_frame(requests, {"item": "Item", "quantity": "Qty", "location": "Location",
                                         "urgency": "Urgency", "status": "Status"}),
                hide_index=True, use_container_width=True,
            )
    with cols[2]:
        st.subheader("Resource Offers")
        if not offers.items:
            st.caption("No resource offers yet.")
        else:
            st.dataframe(
                records_frame(offers, {"item": "Item", "quantity": "Qty", "location": "Location",
                                       "availability": "Availability", "status": "Status"}),
                hide_index=True, use_container_width=True,
            )


def render_alerts(page: AlertsPage) -> None:
    st.header("Flood Alerts")
    form = page.form
    cols = st.columns([2, 3])

    with cols[0]:
        st.subheader("Report a Flood Alert")
        with st.form(key=f"alert_form_{form.version}"):
            location = st.text_input("Location", value=form.values["location"], placeholder="e.g., Village A")
            status = st.selectbox("Status", ALERT_STATUSES, index=ALERT_STATUSES.index(form.values["status"]),
                                  format_func=display_label)
            severity = st.selectbox("Severity", SEVERITIES, index=SEVERITIES.index(form.values["severity"]),
                                    format_func=display_label)
            submitted = st.form_submit_button("Report Alert", disabled=form.submitting, type="primary")
        if submitted:
            form.submit(location=location, status=status, severity=severity)
        render_form_error(form)

    with cols[1]:
        st.subheader("Current Alerts")
        if not page.alerts:
            st.caption("No flood alerts reported yet.")
        for alert in page.alerts:
            with st.container(border=True):
                st.markdown(f"**{alert.location}**")
                st.markdown(f"Status: {status_badge(alert.status)} · Severity: {level_badge(alert.severity)}")
                st.caption(f"Reported {format_timestamp(alert.timestamp)}")


def _resource_fields(form: RecordForm) -> Dict[str, Any]:
    values = form.values
    return {
        "item": st.text_input("Item", value=values["item"], placeholder="e.g., Drinking water"),
        "quantity": st.text_input("Quantity", value=str(values["quantity"]), placeholder="e.g., 50"),
        "location": st.text_input("Location", value=values["location"], placeholder="e.g., Zone 3"),
        "contact": st.text_input("Contact", value=values["contact"], placeholder="Phone or email"),
    }


def render_resources(page: ResourcesPage) -> None:
    st.header("Resources")
    tab_labels = {"needs": "Resource Needs", "offers": "Resource Offers"}
    tab = st.radio("View", list(tab_labels), format_func=tab_labels.get, horizontal=True,
                   index=list(tab_labels).index(page.active_tab), label_visibility="collapsed")
    if tab != page.active_tab:
        page.select_tab(tab)

    cols = st.columns([2, 3])
    if page.active_tab == "needs":
        form = page.request_form
        with cols[0]:
            st.subheader("Request a Resource")
            with st.form(key=f"request_form_{form.version}"):
                fields = _resource_fields(form)
                fields["urgency"] = st.selectbox("Urgency", URGENCIES, index=URGENCIES.index(form.values["urgency"]),
                                                 format_func=display_label)
                submitted = st.form_submit_button("Submit Request", disabled=form.submitting, type="primary")
            if submitted:
                form.submit(**fields)
            render_form_error(form)
        with cols[1]:
            st.subheader("Current Needs")
            if not page.requests:
                st.caption("No resource requests yet.")
            for request in page.requests:
                with st.container(border=True):
                    st.markdown(f"**{request.item}** × {request.quantity} at {request.location}")
                    st.markdown(f"Urgency: {level_badge(request.urgency)} · Status: {display_label(request.status)}")
                    st.caption(f"Contact: {request.contact}")
                    if st.button("Match Offers", key=f"match_offers_{request.id}", disabled=page.matching):
                        page.match_offers(request)
                        st.rerun()
    else:
        form = page.offer_form
        with cols[0]:
            st.subheader("Offer a Resource")
            with st.form(key=f"offer_form_{form.version}"):
                fields = _resource_fields(form)
                fields["availability"] = st.selectbox(
                    "Availability", AVAILABILITIES, index=AVAILABILITIES.index(form.values["availability"]),
                    format_func=display_label,
                )
                submitted = st.form_submit_button("Submit Offer", disabled=form.submitting, type="primary")
            if submitted:
                form.submit(**fields)
            render_form_error(form)
        with cols[1]:
            st.subheader("Current Offers")
            if not page.offers:
                st.caption("No resource offers yet.")
            for offer in page.offers:
                with st.container(border=True):
                    st.markdown(f"**{offer.item}** × {offer.quantity} at {offer.location}")
                    st.markdown(f"Availability: {availability_badge(offer.availability)} · "
                                f"Status: {display_label(offer.status)}")
                    st.caption(f"Contact: {offer.contact}")
                    if st.button("Match Requests", key=f"match_requests_{offer.id}", disabled=page.matching):
                        page.match_requests(offer)
                        st.rerun()

    if page.matching:
        st.info("Finding the best matches...")
    if page.match_results:
        st.markdown("---")
        st.subheader("AI Matching Results")
        st.text(page.match_results)
        if st.button("Clear Results"):
            page.clear_matches()
            st.rerun()


def render_summarize(page: SummarizePage) -> None:
    st.header("Summarize Flood Reports")
    render_summarizer(page.summarizer, "AI Flood Report Summarizer")


def _render_credentials(page, title: str, button: str, switch_label: str, switch_route: str) -> None:
    st.header(title)
    with st.form(f"{page.route}_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button(button, type="primary")
    if submitted:
        with st.spinner(f"{button}..."):
            ok = page.submit(email, password)
        if ok:
            st.rerun()
    if page.error:
        st.error(page.error)
    if st.button(switch_label):
        page.app.navigate(switch_route)
        st.rerun()


def render_login(page: LoginPage) -> None:
    _render_credentials(page, "Login", "Login", "Don't have an account? Sign up", "signup")


def render_signup(page: SignupPage) -> None:
    _render_credentials(page, "Sign Up", "Sign Up", "Already have an account? Log in", "login")


RENDERERS = {
    "dashboard": render_dashboard,
    "alerts": render_alerts,
    "resources": render_resources,
    "summarize": render_summarize,
    "login": render_login,
    "signup": render_signup,
}


def render_not_found(app: AppState) -> None:
    st.header("404 - Page Not Found")
    st.write("The page you are looking for does not exist.")
    if st.button("Return home", type="primary"):
        app.navigate("dashboard")
        st.rerun()


def render_fallback(app: AppState, error: Exception) -> None:
    st.header("Oops! Something went wrong.")
    st.write("An unexpected error occurred.")
    if IS_DEV:
        st.exception(error)
    cols = st.columns(2)
    with cols[0]:
        if st.button("Return home", type="primary"):
            current = ss.get("page_controller")
            if current is not None:
                current.unmount()
                ss["page_controller"] = None
            app.navigate("dashboard")
            st.rerun()
    with cols[1]:
        if st.button("Retry"):
            st.rerun()
    st.caption("If this happens repeatedly, please contact the volunteers coordinating your area.")


STREAMLIT_CONTROL_EXCEPTIONS = ("RerunException", "StopException")


def main() -> None:
    # ========================================================================
    # APP STATE INITIALIZATION (must run before any widget)
    # ========================================================================
    app = init_auth_state()

    try:
        app.dispatcher.run_pending()
        render_sidebar(app)

        if app.identity.loading:
            with st.spinner("Loading User..."):
                resolve_identity()
            st.rerun()

        page = switch_page(app)
        print(f"[ROUTING] route={app.route} | user_present={is_authenticated()}")

        if page is None:
            render_not_found(app)
            return
        if page.view_status == "redirect":
            st.rerun()
        if page.view_status == "loading":
            st.info("Loading...")
            return

        render_notifications(app)
        RENDERERS[page.route](page)
        live_refresh()
    except Exception as e:
        # st.rerun()/st.stop() signal through exceptions; let them through
        if type(e).__name__ in STREAMLIT_CONTROL_EXCEPTIONS:
            raise
        print(f"[APP] Unhandled error on route={app.route}: {type(e).__name__}")
        render_fallback(app, e)


if __name__ == "__main__":
    main()
