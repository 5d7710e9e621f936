# ortoist/app.py

import logging

import streamlit as st
from workshop.config import LOG_LEVEL
from workshop.service import WorkshopService
import gui

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# --- Page Configuration ---
st.set_page_config(
    page_title="Ortoist",
    layout="wide"
)

# --- Service Initialization ---
@st.cache_resource
def get_workshop_service():
    """Initializes and returns the main service."""
    return WorkshopService()

service = get_workshop_service()

# --- Session State Management ---
if 'context' not in st.session_state:
    st.session_state.context = service.new_context()
if 'auth_page' not in st.session_state:
    st.session_state.auth_page = 'welcome'

context = st.session_state.context
gui.apply_theme(context)

# --- Main App Router ---
if context.is_authenticated:
    gui.show_main_app(service, context)
else:
    if st.session_state.auth_page == 'welcome':
        gui.show_welcome_page()
    elif st.session_state.auth_page == 'login':
        gui.show_login_form(service, context)
    elif st.session_state.auth_page == 'register':
        gui.show_register_form(service)
