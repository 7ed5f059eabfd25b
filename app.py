"""
app.py
Streamlit Gym Membership console (single operator).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
import os

import pandas as pd
import streamlit as st

import auth
import utils
from errors import MembershipError
from models import GENDERS, NEAR_EXPIRY_DAYS, PLAN_DAYS
from service import MembershipService

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO"),
)
log = logging.getLogger(__name__)

st.set_page_config(page_title="Gym Membership System", layout="wide")


def init_once():
    # Operator account + member store, once per browser session
    if "service" not in st.session_state:
        auth.init_admin()
        st.session_state.service = MembershipService.open()
        if st.session_state.service.first_run:
            log.info("No member file yet; starting with an empty store")


def get_service() -> MembershipService:
    return st.session_state.service


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "username" not in st.session_state:
        st.session_state.username = None


def logout():
    st.session_state.logged_in = False
    st.session_state.username = None
    st.success("Logged out.")


def login_screen():
    st.title("🔐 Gym Operator Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value=auth.DEFAULT_USERNAME)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(username.strip(), password):
                st.session_state.logged_in = True
                st.session_state.username = username.strip()
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default operator:\n\n"
            f"- username: **{auth.DEFAULT_USERNAME}**\n"
            f"- password: **{auth.DEFAULT_PASSWORD}**\n\n"
            "You will be forced to change it on first login."
        )


def password_form(key: str) -> None:
    p1 = st.text_input("New password", type="password", key=f"{key}_p1")
    p2 = st.text_input("Confirm new password", type="password", key=f"{key}_p2")
    if st.button("Update password", type="primary", key=f"{key}_btn"):
        if p1 != p2:
            st.error("Passwords do not match.")
            return
        try:
            auth.change_password(st.session_state.username, p1)
        except MembershipError as e:
            st.error(str(e))
            return
        st.success("Password updated.")
        st.rerun()


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")
    st.warning("You must change the default password before using the app.")
    password_form("force")


def run_action(action, success_message: str) -> bool:
    """Run a service call and report the outcome; the page reruns on success."""
    try:
        action()
    except MembershipError as e:
        st.error(str(e))
        return False
    st.success(success_message)
    return True


def status_label(active: bool) -> str:
    return "active" if active else "expired"


def members_frame(rows: list[dict]) -> pd.DataFrame:
    df = utils.members_to_frame(rows)
    df["status"] = df["active"].map(status_label)
    df["days_left"] = [utils.format_days_left(r["days_left"]) for r in rows]
    return df.drop(columns=["active"])


def dashboard_page():
    st.header("📊 Dashboard")

    service = get_service()
    stats = service.statistics()

    c1, c2, c3 = st.columns(3)
    c1.metric("Total members", stats.total)
    c2.metric("Active members", stats.active_count)
    c3.metric(f"Expiring in next {NEAR_EXPIRY_DAYS} days", len(stats.near_expiry))

    st.divider()

    st.subheader("Plan mix (active members)")
    st.dataframe(utils.plan_mix_frame(stats), use_container_width=True, hide_index=True)

    st.subheader(f"Expiring soon (next {NEAR_EXPIRY_DAYS} days)")
    if stats.near_expiry:
        st.dataframe(utils.near_expiry_frame(stats), use_container_width=True, hide_index=True)
    else:
        st.caption(f"No members expiring in the next {NEAR_EXPIRY_DAYS} days.")


def member_form():
    st.subheader("➕ Add Member")
    service = get_service()

    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Name (no spaces)")
        gender = st.selectbox("Gender", options=list(GENDERS))
    with col2:
        age = st.number_input("Age", min_value=0, max_value=150, value=18, step=1)
        phone = st.text_input("Phone (11 digits)")
    with col3:
        plan_type = st.selectbox("Plan type", options=list(PLAN_DAYS.keys()))
        st.caption(f"Join date: **{service.today()}** (set automatically)")

    errors = utils.validate_member_inputs(name.strip(), gender, int(age), phone.strip(), plan_type)
    if (name or phone) and errors:
        for e in errors:
            st.error(e)

    if st.button("Save", type="primary", disabled=bool(errors)):
        if run_action(
            lambda: service.add_member(name.strip(), gender, int(age), phone.strip(), plan_type),
            "Member added.",
        ):
            st.rerun()


def members_page():
    st.header("👥 Members")

    service = get_service()

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name contains)")
        status_filter = st.selectbox("Status", ["All", "active", "expired"])

    members = service.search(search.strip()) if search.strip() else service.list_members()
    if status_filter != "All":
        members = [m for m in members if status_label(m.active) == status_filter]

    df = members_frame(service.member_rows(members))
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        member_ids = df["id"].tolist() if not df.empty else []
        selected_id = st.selectbox("Member ID", options=["(none)"] + [str(i) for i in member_ids])

    with colB:
        if selected_id != "(none)":
            member_id = int(selected_id)
            st.subheader("Member actions")
            c1, c2, c3 = st.columns(3)
            with c1:
                new_phone = st.text_input("New phone", key="new_phone")
                if st.button("Update phone"):
                    if run_action(lambda: service.update_phone(member_id, new_phone.strip()), "Phone updated."):
                        st.rerun()
            with c2:
                if st.button("Deactivate"):
                    try:
                        changed = service.deactivate(member_id)
                    except MembershipError as e:
                        st.error(str(e))
                    else:
                        if changed:
                            st.success("Member deactivated.")
                            st.rerun()
                        else:
                            st.info("Member is already expired/deactivated.")
            with c3:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    if run_action(lambda: service.delete(member_id), "Member deleted."):
                        st.rerun()

    st.divider()
    member_form()


def renewals_page():
    st.header("🔁 Renewals")

    # Outcome of the last renewal, shown after the page reruns
    if st.session_state.get("renew_message"):
        st.success(st.session_state.pop("renew_message"))

    service = get_service()
    members = service.list_members()
    if not members:
        st.info("No members yet.")
        return

    options = {f"{m.name} ({m.phone}) - ID {m.id}": m.id for m in members}
    chosen_label = st.selectbox("Member", list(options.keys()))
    m = service.get_member(options[chosen_label])

    st.write(
        f"Current plan: **{m.plan_type}** | Joined: **{m.join_date}** | "
        f"Bonus days: **{m.bonus_days}** | Status: **{status_label(m.active)}** | "
        f"Days left: **{utils.format_days_left(service.days_left(m))}**"
    )
    if m.active:
        st.caption("Active members can only extend their current plan. Other plans are available once expired.")

    plans = list(PLAN_DAYS.keys())
    plan_type = st.selectbox(
        "Renew with plan",
        options=plans,
        index=plans.index(m.plan_type),
        format_func=lambda p: f"{p} ({PLAN_DAYS[p]} days)",
    )

    if st.button("Renew", type="primary"):
        try:
            outcome = service.renew(m.id, plan_type)
        except MembershipError as e:
            st.error(str(e))
            return
        if outcome == "fresh":
            st.session_state.renew_message = f"Renewed: {plan_type} starting today ({m.join_date})."
        else:
            st.session_state.renew_message = f"Extended by {PLAN_DAYS[plan_type]} days, plan remains {m.plan_type}."
        st.rerun()


def reports_page():
    st.header("🧾 Reports")

    service = get_service()

    st.subheader("Export members to CSV")
    rows = service.member_rows()
    if rows:
        st.download_button(
            "Download members.csv",
            data=utils.members_to_csv_bytes(rows),
            file_name="members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    stats = service.statistics()
    st.subheader(f"Statistics ({stats.today})")
    st.write(f"Active members: **{stats.active_count}** of {stats.total}")
    st.dataframe(utils.plan_mix_frame(stats), use_container_width=True, hide_index=True)


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Change password")
    password_form("settings")

    st.divider()

    service = get_service()

    st.subheader("Save")
    st.caption(f"Data file: {service.path}")
    if st.button("Save now"):
        run_action(service.save, "Saved.")

    st.subheader("Sample data")
    if len(service.store) == 0:
        st.caption("Add 4 demo members to the empty store.")
        if st.button("Insert sample data"):
            if run_action(lambda: utils.insert_sample_data(service), "Sample data inserted."):
                st.rerun()
    else:
        st.caption("Sample data is only offered while the store is empty.")


def main_app():
    st.sidebar.title("🏋️ Gym Memberships")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = ["Dashboard", "Members", "Renewals", "Reports", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Renewals":
        renewals_page()
    elif st.session_state.page == "Reports":
        reports_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login
    if auth.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
