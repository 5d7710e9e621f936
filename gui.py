# ortoist/gui.py

import streamlit as st
import calendar
import datetime
import time
import pandas as pd

from workshop.errors import WorkshopError
from workshop.jobs import ACTIVE, ALL, COMPLETED, JobDraft, filter_jobs
from workshop.models import JobStatus, Role
from workshop.pricelist import export_price_list, price_list_template, read_price_list
from workshop.stats import format_money

TECHNICIAN_PAGES = ["Dashboard", "New Job", "Job List", "Statistics", "Price List", "Preferences", "My Profile"]
DOCTOR_PAGES = ["Dashboard", "Job List", "Preferences", "My Profile"]

JOB_VIEWS = {"Active Jobs": ACTIVE, "Completed Jobs": COMPLETED, "All Jobs": ALL}

DARK_CSS = """
<style>
.stApp, [data-testid="stSidebar"] { background-color: #111827; color: #f9fafb; }
</style>
"""

# --- Page navigation helpers ---
def set_page_welcome():
    st.session_state.auth_page = 'welcome'

def set_page_login():
    st.session_state.auth_page = 'login'

def set_page_register():
    st.session_state.auth_page = 'register'

def _status_label(job):
    if job.is_settled:
        return "✅ Completed"
    if job.status == JobStatus.COMPLETED:
        return "🕒 Done, Payment Pending"
    return "🛠️ In Progress"

def _format_day(value):
    try:
        return datetime.date.fromisoformat(value[:10]).strftime('%d %B %Y')
    except (TypeError, ValueError):
        return "Unknown Date"

def _jobs_frame(jobs, with_technician=False):
    rows = []
    for job in jobs:
        row = {
            "Date": _format_day(job.date),
            "Doctor": job.doctor_name,
            "Patient": job.patient_name,
            "Job": job.job_name,
            "Price": format_money(job.amount),
            "Status": _status_label(job),
        }
        if with_technician:
            row["Technician"] = job.technician_email
        rows.append(row)
    return pd.DataFrame(rows)

def apply_theme(context):
    if context.theme == 'dark':
        st.markdown(DARK_CSS, unsafe_allow_html=True)

# --- Authentication Pages ---

def show_welcome_page():
    """Displays a welcome screen with buttons to navigate."""
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>Ortoist 🦷</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Job, payment and price tracking for dental prosthetics workshops.</p>", unsafe_allow_html=True)

        st.button("Login", on_click=set_page_login, width='stretch', type="primary")
        st.button("Create a New Account", on_click=set_page_register, width='stretch')

def show_login_form(service, context):
    """Displays the login form."""
    st.button("← Back to Welcome", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Login</h2>", unsafe_allow_html=True)
        with st.form("login_form"):
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", width='stretch')

            if submitted:
                if not username or not password:
                    st.error("Please enter your username and password.")
                else:
                    user = service.accounts.login(username, password)
                    if user:
                        context.login(user)
                        st.session_state.auth_page = 'welcome'
                        st.session_state.page = "Dashboard"
                        st.rerun()
                    else:
                        st.error("Invalid username or password.")

def show_register_form(service):
    """Displays the registration form."""
    st.button("← Back to Welcome", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Create a New Account</h2>", unsafe_allow_html=True)
        with st.form("register_form"):
            full_name = st.text_input("Full Name")
            email = st.text_input("Email")
            role = st.selectbox("Role", [Role.TECHNICIAN.value, Role.DOCTOR.value], format_func=str.capitalize)
            username = st.text_input("Choose a Username")
            password = st.text_input("Choose a Password", type="password")
            confirm_password = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Register", width='stretch')

            if submitted:
                try:
                    service.accounts.register(username, password, confirm_password, full_name, email, role)
                except WorkshopError as e:
                    st.error(str(e))
                else:
                    st.success("Registration successful! You can now log in.")
                    time.sleep(1)
                    set_page_login()
                    st.rerun()

# --- Main Application UI ---

def show_main_app(service, context):
    """Displays the main app UI after successful login."""
    user = context.current_user

    st.sidebar.title(f"Welcome, {user.full_name or user.username}!")
    st.sidebar.write(f"**Role:** {user.role.value.capitalize()}")
    if not user.is_doctor:
        pending = service.jobs.pending_count(user.email)
        st.sidebar.info(f"🔔 **{pending}** open job{'s' if pending != 1 else ''}")

    if st.sidebar.button("Logout"):
        context.logout()
        st.session_state.auth_page = 'welcome'
        st.session_state.page = None
        st.rerun()

    st.sidebar.divider()

    pages = DOCTOR_PAGES if user.is_doctor else TECHNICIAN_PAGES
    if st.session_state.get('page') not in pages:
        st.session_state.page = pages[0]
    page_selection = st.sidebar.radio("Navigation", pages, index=pages.index(st.session_state.page))
    if page_selection != st.session_state.page:
        st.session_state.page = page_selection
        st.rerun()

    page = st.session_state.page
    if page == "Dashboard":
        if user.is_doctor:
            _render_doctor_dashboard(context)
        else:
            _render_dashboard(service, context)
    elif page == "New Job":
        _render_job_entry_page(service, context)
    elif page == "Job List":
        if user.is_doctor:
            _render_doctor_job_list(service, context)
        else:
            _render_job_list(service, context)
    elif page == "Statistics":
        _render_statistics_page(context)
    elif page == "Price List":
        _render_price_list_page(service, context)
    elif page == "Preferences":
        _render_preferences_page(service, context)
    elif page == "My Profile":
        _render_profile_page(service, context)

def _render_stat_cards(cards):
    columns = st.columns(len(cards))
    for column, (title, value) in zip(columns, cards):
        column.metric(title, value)

def _render_dashboard(service, context):
    st.markdown("<h2 style='text-align: center;'>Dashboard</h2>", unsafe_allow_html=True)
    stats = context.monitor.snapshot
    _render_stat_cards([
        ("Active Patients", stats.active_patients),
        ("Completed Jobs", stats.completed_jobs),
        ("Pending Jobs", stats.pending_jobs),
        ("Payments Received", format_money(stats.total_earnings)),
        ("Pending Payments", format_money(stats.pending_payments)),
    ])
    st.divider()
    _render_calendar(service, context)

def _render_calendar(service, context):
    email = context.current_user.email
    today = datetime.date.today()
    if 'calendar_month' not in st.session_state:
        st.session_state.calendar_month = today.replace(day=1)
    month = st.session_state.calendar_month

    c1, c2, c3 = st.columns([1, 3, 1])
    if c1.button("◀", key="prev_month"):
        st.session_state.calendar_month = (month - datetime.timedelta(days=1)).replace(day=1)
        st.rerun()
    c2.markdown(f"<h3 style='text-align: center;'>{month.strftime('%B %Y')}</h3>", unsafe_allow_html=True)
    if c3.button("▶", key="next_month"):
        st.session_state.calendar_month = (month + datetime.timedelta(days=32)).replace(day=1)
        st.rerun()

    counts = service.calendar.counts_for_month(email, month.year, month.month)
    weeks = []
    for week in calendar.Calendar(firstweekday=0).monthdatescalendar(month.year, month.month):
        row = []
        for day in week:
            if day.month != month.month:
                row.append("")
                continue
            label = str(day.day)
            if counts.get(day):
                label += f" 📝{counts[day]}"
            if day == today:
                label = f"[{label}]"
            row.append(label)
        weeks.append(row)
    st.dataframe(pd.DataFrame(weeks, columns=["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]), hide_index=True, width='stretch')

    selected_day = st.date_input("Notes for day", value=today)
    for note in service.calendar.for_day(email, selected_day):
        col1, col2 = st.columns([5, 1])
        col1.write(note.text)
        if col2.button("Delete", key=f"delete_note_{note.id}"):
            try:
                service.calendar.delete(email, note.id)
            except WorkshopError as e:
                st.error(str(e))
            else:
                st.success("Note deleted.")
                st.rerun()

    with st.form("add_calendar_note", clear_on_submit=True):
        text = st.text_input("New note...")
        if st.form_submit_button("Add Note"):
            try:
                service.calendar.add(email, selected_day, text)
            except WorkshopError as e:
                st.error(str(e))
            else:
                st.success("Note added.")
                st.rerun()

def _render_doctor_dashboard(context):
    st.markdown("<h2 style='text-align: center;'>Doctor Dashboard</h2>", unsafe_allow_html=True)
    stats = context.monitor.snapshot
    _render_stat_cards([
        ("Total Jobs", stats.total_jobs),
        ("Open Jobs", stats.pending_jobs),
        ("Completed Jobs", stats.completed_jobs),
        ("Payments Made", format_money(stats.total_earnings)),
        ("Pending Payments", format_money(stats.pending_payments)),
    ])

def _render_job_entry_page(service, context):
    st.markdown("<h2 style='text-align: center;'>New Job</h2>", unsafe_allow_html=True)
    st.caption("Enter the details of the new job. All fields are required.")

    doctors = service.accounts.get_doctors()
    doctor_mode = st.radio("Doctor", ["Registered Doctor", "New Doctor"], horizontal=True)

    with st.form("job_entry_form", clear_on_submit=True):
        doctor_email = None
        custom_doctor_name = None
        if doctor_mode == "Registered Doctor":
            if doctors:
                by_email = {d.email: d.full_name for d in doctors}
                doctor_email = st.selectbox("Select a doctor", list(by_email), format_func=by_email.get)
            else:
                st.warning("No registered doctors found. Enter the doctor's name instead.")
        else:
            custom_doctor_name = st.text_input("Doctor name")
        patient_name = st.text_input("Patient name")
        job_name = st.text_input("Job")
        price = st.text_input("Price", placeholder="0.00")
        submitted = st.form_submit_button("Create Job", width='stretch')

    if submitted:
        draft = JobDraft(
            patient_name=patient_name, job_name=job_name, price=price,
            doctor_email=doctor_email, custom_doctor_name=custom_doctor_name,
        )
        try:
            service.jobs.append(context.current_user.email, draft)
        except WorkshopError as e:
            st.error(str(e))
        else:
            st.success("New job created.")
            time.sleep(1)
            st.session_state.page = "Job List"
            st.rerun()

def _render_job_list(service, context):
    st.markdown("<h2 style='text-align: center;'>Job Tracking</h2>", unsafe_allow_html=True)
    email = context.current_user.email
    view = JOB_VIEWS[st.selectbox("Filter", list(JOB_VIEWS))]
    jobs = filter_jobs(service.jobs.list_all(email), view)

    if not jobs:
        st.info({ACTIVE: "No active jobs.", COMPLETED: "No completed jobs."}.get(view, "No jobs yet."))
        return

    header = st.columns([2, 2, 2, 2, 1, 2, 3])
    for column, title in zip(header, ["Date", "Doctor", "Patient", "Job", "Price", "Status", "Actions"]):
        column.markdown(f"**{title}**")

    for job in jobs:
        cols = st.columns([2, 2, 2, 2, 1, 2, 3])
        cols[0].write(_format_day(job.date))
        cols[1].write(job.doctor_name)
        cols[2].write(job.patient_name)
        cols[3].write(job.job_name)
        cols[4].write(format_money(job.amount))
        cols[5].write(_status_label(job))
        with cols[6]:
            action = None
            if job.status == JobStatus.PENDING:
                if st.button("Done, Payment Pending", key=f"done_{job.id}"):
                    action = service.jobs.mark_done_payment_pending
                if st.button("Completed", key=f"paid_{job.id}"):
                    action = service.jobs.mark_done_paid
            elif not job.payment_received:
                if st.button("Payment Received", key=f"received_{job.id}"):
                    action = service.jobs.mark_payment_received
            if action:
                try:
                    action(email, job.id)
                except WorkshopError as e:
                    st.error(str(e))
                else:
                    st.toast("Job status updated.")
                    st.rerun()

def _render_doctor_job_list(service, context):
    st.markdown("<h2 style='text-align: center;'>My Jobs</h2>", unsafe_allow_html=True)
    view = JOB_VIEWS[st.selectbox("Filter", list(JOB_VIEWS))]
    jobs = filter_jobs(service.jobs.list_for_doctor(context.current_user), view)
    if not jobs:
        st.info("No jobs found.")
        return
    st.dataframe(_jobs_frame(jobs, with_technician=True), hide_index=True, width='stretch')

def _render_statistics_page(context):
    st.markdown("<h2 style='text-align: center;'>Statistics</h2>", unsafe_allow_html=True)
    totals = context.monitor.snapshot
    _render_stat_cards([
        ("Total Jobs", totals.total_jobs),
        ("Completed Jobs", totals.completed_jobs),
        ("Pending Jobs", totals.pending_jobs),
        ("Payments Received", format_money(totals.total_earnings)),
        ("Pending Payments", format_money(totals.pending_payments)),
    ])

    st.subheader("By Doctor")
    if not context.monitor.by_doctor:
        st.info("No jobs yet.")
        return
    st.dataframe(pd.DataFrame([
        {
            "Doctor": s.doctor_name,
            "Total Jobs": s.total_jobs,
            "Completed": s.completed_jobs,
            "Pending": s.pending_jobs,
            "Payments Received": format_money(s.total_earnings),
            "Pending Payments": format_money(s.pending_payments),
        }
        for s in context.monitor.by_doctor
    ]), hide_index=True, width='stretch')

def _render_price_list_page(service, context):
    st.markdown("<h2 style='text-align: center;'>Price List</h2>", unsafe_allow_html=True)
    term = st.text_input("Search the price list", placeholder="Search job type...")
    entries = service.price_lists.search(context.current_user.email, term)
    if not entries:
        if term:
            st.info("No entries match your search.")
        else:
            st.info("No price list uploaded yet. You can upload one from the Preferences page.")
        return
    st.dataframe(pd.DataFrame([
        {"Job Type": e.type, "Price": format_money(e.price), "Notes": e.notes} for e in entries
    ]), hide_index=True, width='stretch')

def _import_price_list(service, email, uploaded):
    try:
        entries = read_price_list(uploaded)
        service.price_lists.replace(email, entries)
    except WorkshopError as e:
        st.error(str(e))
    else:
        st.session_state.imported_upload = getattr(uploaded, 'file_id', uploaded.name)
        st.success(f"Price list imported ({len(entries)} entries).")

def _render_preferences_page(service, context):
    st.markdown("<h2 style='text-align: center;'>Preferences</h2>", unsafe_allow_html=True)
    user = context.current_user

    dark_mode = st.toggle("Dark mode", value=context.theme == 'dark')
    auto_save = st.toggle("Auto save", value=context.auto_save,
                          help="Import an uploaded price list as soon as it is chosen.")
    try:
        if dark_mode != (context.theme == 'dark'):
            context.set_theme('dark' if dark_mode else 'light')
            st.rerun()
        if auto_save != context.auto_save:
            context.save_preferences(dark_mode, auto_save)
            st.toast("Preferences saved.")
    except WorkshopError as e:
        st.error(str(e))

    if not user.is_doctor:
        st.divider()
        st.subheader("Price List")
        st.caption("Download the template first and fill it in before uploading. Uploading replaces the current list.")
        st.download_button(
            "Download Template", price_list_template(), "price-list-template.xlsx",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        uploaded = st.file_uploader("Upload price list", type=["xlsx", "csv"])
        if uploaded is not None:
            if context.auto_save:
                if st.session_state.get('imported_upload') != getattr(uploaded, 'file_id', uploaded.name):
                    _import_price_list(service, user.email, uploaded)
            elif st.button("Import Price List"):
                _import_price_list(service, user.email, uploaded)

        current = service.price_lists.get(user.email)
        if current:
            st.download_button(
                "Export Current Price List", export_price_list(current),
                f"price-list-{datetime.date.today()}.xlsx",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            )
            if st.button("Delete Price List", type="primary"):
                try:
                    service.price_lists.clear(user.email)
                except WorkshopError as e:
                    st.error(str(e))
                else:
                    st.success("Price list deleted.")
                    st.rerun()

        st.divider()
        st.subheader("History")
        st.caption("Permanently removes completed and paid jobs. This cannot be undone.")
        settled = len(filter_jobs(service.jobs.list_all(user.email), COMPLETED))
        confirm = st.checkbox(f"I understand that {settled} settled job(s) will be deleted.")
        if st.button("Clear History", disabled=not confirm):
            try:
                removed = service.jobs.clear_settled(user.email)
            except WorkshopError as e:
                st.error(str(e))
            else:
                st.success(f"Removed {removed} settled job(s).")
                st.rerun()

def _render_profile_page(service, context):
    st.markdown("<h2 style='text-align: center;'>My Profile</h2>", unsafe_allow_html=True)
    user = context.current_user

    with st.form("profile_form"):
        st.write(f"**Username:** {user.username}")
        st.write(f"**Role:** {user.role.value.capitalize()}")
        st.write(f"**Member since:** {_format_day(user.created_at)}")

        full_name = st.text_input("Full Name", value=user.full_name)
        email = st.text_input("Email", value=user.email)

        if st.form_submit_button("Update Profile"):
            try:
                service.update_profile(context, full_name, email)
            except WorkshopError as e:
                st.error(str(e))
            else:
                st.success("Profile updated successfully!")
                st.rerun()

    st.divider()
    st.subheader("Other Users")
    others = service.accounts.list_users(exclude_username=user.username)
    if not others:
        st.info("No other users registered yet.")
        return
    st.dataframe(pd.DataFrame([
        {
            "Full Name": u.full_name,
            "Username": f"@{u.username}",
            "Role": u.role.value.capitalize(),
            "Member Since": _format_day(u.created_at),
        }
        for u in others
    ]), hide_index=True, width='stretch')
