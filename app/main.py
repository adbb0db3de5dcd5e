"""
Streamlit Frontend for Spend Tracker

This is the caller-facing layer: it signs the user in, validates input,
and calls the flows in spend_tracker.orchestrator.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Input is validated here, before it reaches the flows
3. A saved expense is always reported as saved, even when the
   threshold check or the notification did not go through
4. Visual feedback for all operations
"""

import asyncio
import logging
from datetime import date

import streamlit as st

from spend_tracker.audit import create_correlation_id
from spend_tracker.auth import AuthenticationError
from spend_tracker.evaluation import EvaluationError
from spend_tracker.models.expense import Classification, ThresholdEvaluation
from spend_tracker.orchestrator import (
    ExpenseLedgerFlow,
    ExpenseRecordingFlow,
    PersistFailure,
    create_app_components,
)
from spend_tracker.services.storage import NotFoundError, StorageError
from spend_tracker.validation import ExpenseValidator


logging.basicConfig(level=logging.INFO, format="%(message)s")

# Page configuration
st.set_page_config(
    page_title="Spend Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


STATUS_BOXES = {
    Classification.NORMAL: ("success-box", "✅ On track"),
    Classification.APPROACHING: ("warning-box", "⚠️ Nearing your weekly limit"),
    Classification.EXCEEDED: ("error-box", "🚨 Weekly limit exceeded"),
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return run_async(create_app_components())


@st.cache_resource
def get_validator() -> ExpenseValidator:
    return ExpenseValidator()


def main():
    """Main application entry point."""
    recording_flow, ledger_flow, auth_flow, _ = get_components()

    if "user_id" not in st.session_state:
        st.session_state.user_id = None

    if st.session_state.user_id is None:
        render_login_page(auth_flow)
        return

    # Sidebar navigation
    st.sidebar.title("💰 Spend Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Record Expense", "📋 My Expenses", "⚙️ Weekly Limit"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Sign out"):
        st.session_state.user_id = None
        st.rerun()

    user_id = st.session_state.user_id

    # Route to appropriate page
    if page == "➕ Record Expense":
        render_record_page(recording_flow, ledger_flow, user_id)
    elif page == "📋 My Expenses":
        render_expenses_page(ledger_flow, user_id)
    elif page == "⚙️ Weekly Limit":
        render_limit_page(ledger_flow, user_id)


def render_login_page(auth_flow):
    """Render the sign-in form."""
    st.title("💰 Spend Tracker")
    st.markdown("Sign in to track your weekly spending.")

    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        try:
            st.session_state.user_id = run_async(
                auth_flow.authenticate(email=email.strip(), password=password)
            )
            st.rerun()
        except AuthenticationError:
            st.error("Invalid email or password")
        except StorageError as e:
            st.error(f"Sign-in is unavailable right now: {e}")


def render_status(evaluation: ThresholdEvaluation):
    """Show the weekly total against the limit."""
    if not evaluation.has_limit:
        st.info(f"Spent this week: {evaluation.weekly_total:,} (no weekly limit set)")
        return

    css_class, title = STATUS_BOXES[evaluation.classification]
    st.markdown(f"""
    <div class="{css_class}">
        <h4>{title}</h4>
        <p>Spent this week: <strong>{evaluation.weekly_total:,}</strong>
        of <strong>{evaluation.weekly_limit:,}</strong></p>
    </div>
    """, unsafe_allow_html=True)
    st.progress(min(evaluation.usage_ratio, 1.0))


def render_record_page(
    recording_flow: ExpenseRecordingFlow,
    ledger_flow: ExpenseLedgerFlow,
    user_id: int,
):
    """Render the record-expense page."""
    st.title("➕ Record Expense")

    with st.form("record_expense", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input(
                "Amount (minor units, e.g. cents) *",
                min_value=0,
                step=1,
                help="Whole number of the smallest currency unit",
            )
            category = st.text_input(
                "Category",
                placeholder="e.g. groceries",
            )
        with col2:
            expense_date = st.date_input(
                "Date *",
                value=date.today(),
            )
        submitted = st.form_submit_button("💾 Save Expense", type="primary")

    if submitted:
        validator = get_validator()
        result = validator.validate_expense(
            amount=int(amount),
            expense_date=expense_date,
            category=category,
        )
        if not result.is_valid:
            st.error(validator.get_user_friendly_summary(result))
            st.stop()
        if result.warnings:
            st.warning(validator.get_user_friendly_summary(result))

        try:
            expense = run_async(
                recording_flow.record_expense(
                    user_id=user_id,
                    amount=int(amount),
                    expense_date=expense_date,
                    category=category,
                    correlation_id=create_correlation_id(),
                )
            )
        except PersistFailure as e:
            st.markdown(f"""
            <div class="error-box">
                <h4>❌ Expense not saved</h4>
                <p>{e}</p>
            </div>
            """, unsafe_allow_html=True)
            st.stop()

        st.success(
            f"Saved expense #{expense.id}: {expense.amount:,} "
            f"on {expense.date.strftime('%d %B %Y')}"
        )

    st.markdown("---")
    st.subheader("This week")
    try:
        render_status(run_async(ledger_flow.weekly_status(user_id)))
    except EvaluationError as e:
        st.warning(f"Weekly summary unavailable: {e}")


def render_expenses_page(ledger_flow: ExpenseLedgerFlow, user_id: int):
    """Render the expense list with delete buttons."""
    st.title("📋 My Expenses")

    try:
        expenses = run_async(ledger_flow.list_expenses(user_id))
    except StorageError as e:
        st.error(f"Failed to load expenses: {e}")
        return

    if not expenses:
        st.info("No expenses recorded yet.")
        return

    st.markdown(f"**{len(expenses)} expenses**")

    for expense in expenses:
        col1, col2, col3, col4 = st.columns([2, 2, 3, 1])
        col1.write(expense.date.isoformat())
        col2.write(f"{expense.amount:,}")
        col3.write(expense.category or "-")
        if col4.button("🗑️", key=f"delete_{expense.id}"):
            try:
                run_async(ledger_flow.delete_expense(expense.id))
                st.rerun()
            except NotFoundError:
                st.warning("That expense was already deleted.")
                st.rerun()
            except StorageError as e:
                st.error(f"Failed to delete expense: {e}")


def render_limit_page(ledger_flow: ExpenseLedgerFlow, user_id: int):
    """Render the weekly limit settings."""
    st.title("⚙️ Weekly Limit")
    st.markdown(
        "You get a notification when your weekly spending gets close to "
        "this limit, and again when it goes over. Set it to 0 to switch "
        "notifications off."
    )

    try:
        current = run_async(ledger_flow.get_weekly_limit(user_id))
    except StorageError as e:
        st.error(f"Failed to load weekly limit: {e}")
        return

    with st.form("weekly_limit"):
        new_limit = st.number_input(
            "Weekly limit (minor units)",
            min_value=0,
            value=current,
            step=100,
        )
        submitted = st.form_submit_button("Save limit", type="primary")

    if submitted:
        validator = get_validator()
        result = validator.validate_limit(int(new_limit))
        if not result.is_valid:
            st.error(validator.get_user_friendly_summary(result))
            return
        try:
            run_async(ledger_flow.set_weekly_limit(user_id, int(new_limit)))
            st.success(f"Weekly limit set to {int(new_limit):,}")
        except StorageError as e:
            st.error(f"Failed to set weekly limit: {e}")


if __name__ == "__main__":
    main()
