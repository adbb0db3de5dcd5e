"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Non-technical users can view their expenses directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no foreign keys (we check users in Python)
- Identity is max(id) + 1, so concurrent writers can collide
- Limited query capabilities (we filter and sum in Python)
"""

import json
from datetime import date, datetime
from typing import Callable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from spend_tracker.config import get_settings
from spend_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from spend_tracker.models.expense import Expense, NewExpense, User
from spend_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    week_window,
)


# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "date",
    "category",
]

# Column mappings for Users sheet
USER_COLUMNS = [
    "id",
    "name",
    "email",
    "password_hash",
    "weekly_spending_limit",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# 1-based column of the weekly limit in the Users sheet
_LIMIT_COLUMN = USER_COLUMNS.index("weekly_spending_limit") + 1


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication; only the initial connection is retried.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=1000
        )

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create_sheet(
            self._settings.users_sheet_name, USER_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Handle short rows (Sheets drops trailing empty cells)."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _next_id(rows: list) -> int:
    """One past the largest numeric id in column A, malformed rows included."""
    ids = [int(r[0]) for r in rows if r and r[0].strip().isdigit()]
    return max(ids, default=0) + 1


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the expense ledger.

    Expenses and users are stored as rows, one entity per row.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._clock = clock or date.today

    @staticmethod
    def _expense_to_row(expense: Expense) -> list:
        return [
            str(expense.id),
            str(expense.user_id),
            str(expense.amount),
            expense.date.isoformat(),
            expense.category,
        ]

    @staticmethod
    def _row_to_expense(row: list) -> Expense:
        return Expense(
            id=int(_safe_get(row, 0)),
            user_id=int(_safe_get(row, 1)),
            amount=int(_safe_get(row, 2, "0")),
            date=date.fromisoformat(_safe_get(row, 3)),
            category=_safe_get(row, 4),
        )

    @staticmethod
    def _row_to_user(row: list) -> User:
        return User(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            email=_safe_get(row, 2),
            password_hash=_safe_get(row, 3),
            weekly_spending_limit=int(_safe_get(row, 4, "0")),
        )

    def _load_expenses(self) -> list[Expense]:
        sheet = self._client.get_expenses_sheet()
        all_rows = sheet.get_all_values()[1:]  # Skip header

        expenses = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                expenses.append(self._row_to_expense(row))
            except ValueError:
                continue  # Skip malformed rows
        return expenses

    def _find_user_row(self, user_id: int) -> tuple[int, Optional[User]]:
        """Return (sheet row number, user) or (0, None)."""
        sheet = self._client.get_users_sheet()
        all_rows = sheet.get_all_values()

        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == str(user_id):
                return idx, self._row_to_user(row)
        return 0, None

    def add_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        weekly_spending_limit: Optional[int] = None,
    ) -> User:
        """
        Provision a user. Not part of the ledger interface.

        Without an explicit limit the configured default_weekly_limit applies.
        """
        if weekly_spending_limit is None:
            weekly_spending_limit = get_settings().app.default_weekly_limit

        try:
            sheet = self._client.get_users_sheet()
            rows = [r for r in sheet.get_all_values()[1:] if r and r[0]]
        except Exception as e:
            raise StorageError(f"Failed to add user: {e}")

        if any(_safe_get(r, 2) == email for r in rows):
            raise DuplicateError(f"Email already registered: {email}")

        user = User(
            id=_next_id(rows),
            name=name,
            email=email,
            password_hash=password_hash,
            weekly_spending_limit=weekly_spending_limit,
        )
        try:
            sheet.append_row(
                [
                    str(user.id),
                    user.name,
                    user.email,
                    user.password_hash,
                    str(user.weekly_spending_limit),
                ],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to add user: {e}")
        return user

    async def create_expense(self, expense: NewExpense) -> Expense:
        try:
            _, user = self._find_user_row(expense.user_id)
            if user is None:
                raise NotFoundError(f"No user found with ID {expense.user_id}")

            sheet = self._client.get_expenses_sheet()
            stored = Expense(
                id=_next_id(sheet.get_all_values()[1:]),
                **expense.model_dump(),
            )
            sheet.append_row(self._expense_to_row(stored), value_input_option="RAW")
            return stored
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create expense: {e}")

    async def list_expenses(self, user_id: int) -> list[Expense]:
        try:
            expenses = [e for e in self._load_expenses() if e.user_id == user_id]
        except Exception as e:
            raise StorageError(f"Failed to list expenses for user {user_id}: {e}")
        expenses.sort(key=lambda e: e.id)
        return expenses

    async def delete_expense(self, expense_id: int) -> None:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(expense_id):
                    sheet.delete_rows(idx)
                    return
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

        raise NotFoundError(f"No expense found with ID {expense_id}")

    async def get_weekly_limit(self, user_id: int) -> int:
        try:
            _, user = self._find_user_row(user_id)
        except Exception as e:
            raise StorageError(f"Failed to retrieve weekly limit: {e}")

        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user.weekly_spending_limit

    async def set_weekly_limit(self, user_id: int, new_limit: int) -> None:
        try:
            row_number, user = self._find_user_row(user_id)
            if user is not None:
                sheet = self._client.get_users_sheet()
                sheet.update_cell(row_number, _LIMIT_COLUMN, str(new_limit))
        except Exception as e:
            raise StorageError(f"Failed to set weekly spending limit: {e}")

        if user is None:
            raise NotFoundError(f"No user found with ID {user_id}")

    async def get_weekly_total(self, user_id: int) -> int:
        start, end = week_window(self._clock())
        try:
            expenses = self._load_expenses()
        except Exception as e:
            raise StorageError(f"Failed to calculate weekly expenses: {e}")

        return sum(
            e.amount for e in expenses
            if e.user_id == user_id and start <= e.date < end
        )

    async def get_user_by_email(self, email: str) -> User:
        try:
            sheet = self._client.get_users_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to look up user: {e}")

        for row in all_rows:
            if row and _safe_get(row, 2) == email:
                try:
                    return self._row_to_user(row)
                except ValueError as e:
                    raise StorageError(f"Malformed user row for {email}: {e}")
        raise NotFoundError(f"User not found: {email}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._load_events()
                if e.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._load_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
