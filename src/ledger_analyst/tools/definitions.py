"""Tool definitions for LLM function calling.

These schemas describe the tools the analyst model may call. Each one maps to a
handler in ``ToolExecutor``.
"""

from typing import Any

# === Balance Tools ===

ACCOUNT_BALANCE_TOOL: dict[str, Any] = {
    "name": "account_balance",
    "description": (
        "Gets account balances computed from every journal entry in the ledger. "
        "You do not need account codes: search by name or category. "
        'Examples: {"search": "cash"}, {"search": "payroll"}, {"subtype": "Bank"}, '
        '{"type": "LIABILITY"}, {"subtype": "Accounts Receivable"}.'
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "search": {
                "type": "string",
                "description": "Search accounts by name or category (e.g. \"cash\", \"AP\", \"payroll\"). Case-insensitive.",
            },
            "type": {
                "type": "string",
                "enum": ["ASSET", "LIABILITY", "EQUITY", "REVENUE", "EXPENSE", "INCOME"],
                "description": "Filter by account type",
            },
            "subtype": {
                "type": "string",
                "description": "Filter by account subtype (e.g. \"Cash\", \"Bank\", \"Accounts Payable\")",
            },
            "codes": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Specific account codes, if known",
            },
        },
        "required": [],
    },
}

LIST_ACCOUNT_CATEGORIES_TOOL: dict[str, Any] = {
    "name": "list_account_categories",
    "description": (
        "Lists active account types and subtypes with example accounts. "
        "Use it to discover what exists before querying balances."
    ),
    "input_schema": {"type": "object", "properties": {}, "required": []},
}

TRIAL_BALANCE_TOOL: dict[str, Any] = {
    "name": "get_trial_balance",
    "description": "Trial balance of every account with activity, with debit/credit totals and a balanced check.",
    "input_schema": {
        "type": "object",
        "properties": {
            "account_type": {
                "type": "string",
                "description": "Optional account type filter (e.g. \"LIABILITY\")",
            },
            "as_of_date": {
                "type": "string",
                "description": "Only count entries created on or before this date (YYYY-MM-DD). Omit for all time; dated queries are slower.",
            },
        },
        "required": [],
    },
}

CACHE_STATUS_TOOL: dict[str, Any] = {
    "name": "get_cache_status",
    "description": "Reports how old the cached balances are, to judge data freshness.",
    "input_schema": {"type": "object", "properties": {}, "required": []},
}

# === Ledger API Tools ===

CALL_LEDGER_API_TOOL: dict[str, Any] = {
    "name": "call_ledger_api",
    "description": (
        "Read-only GET against the ERP API, for data beyond balances. "
        "Useful paths: /customers, /contracts, /invoices, /invoice-payments, /credit-memos, "
        "/vendors, /bills, /charges, /reimbursements, /subsidiaries, /bank-accounts, "
        "/books/periods/last-closed, /journal-entries."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "endpoint": {
                "type": "string",
                "description": "API path, e.g. \"/bank-accounts\"",
            },
            "params": {
                "type": "object",
                "description": "Query parameters, e.g. {\"limit\": 100}",
            },
        },
        "required": ["endpoint"],
    },
}

ARR_WATERFALL_TOOL: dict[str, Any] = {
    "name": "get_arr_waterfall",
    "description": "ARR waterfall report for a month (accepts \"Dec 2024\", \"2024-12\" or \"Q4 2024\").",
    "input_schema": {
        "type": "object",
        "properties": {
            "month": {"type": "string", "description": "Month or quarter"},
            "status": {"type": "string", "description": "Optional contract status filter"},
            "breakdown": {"type": "string", "description": "Optional breakdown dimension"},
            "subsidiary": {"type": "string", "description": "Optional subsidiary"},
        },
        "required": [],
    },
}

# === Spreadsheet Tools ===

BUDGET_DATA_TOOL: dict[str, Any] = {
    "name": "get_budget_data",
    "description": "Retrieves budgeted figures (revenue, expenses, headcount, ...) from the budget spreadsheet.",
    "input_schema": {
        "type": "object",
        "properties": {
            "metric": {"type": "string", "description": "Metric to find in account or rollup columns"},
            "period": {"type": "string", "description": "Time period, e.g. \"Q4 2024\""},
            "department": {"type": "string", "description": "Optional department filter"},
            "account": {"type": "string", "description": "Optional GL account filter"},
            "vendor": {"type": "string", "description": "Optional vendor filter"},
            "rollup": {"type": "string", "description": "Optional FP&A rollup group"},
            "statement_type": {
                "type": "string",
                "description": "income_statement, balance_sheet or metrics",
            },
            "sheet_name": {"type": "string", "description": "Explicit tab name"},
        },
        "required": [],
    },
}

FINANCIAL_MODEL_TOOL: dict[str, Any] = {
    "name": "get_financial_model",
    "description": "Retrieves projections, scenarios, assumptions or KPIs from the financial model spreadsheet.",
    "input_schema": {
        "type": "object",
        "properties": {
            "data_type": {
                "type": "string",
                "enum": ["projection", "scenario", "assumptions", "summary", "kpis"],
            },
            "scenario": {"type": "string", "description": "e.g. \"base\", \"upside\""},
            "metric": {"type": "string", "description": "e.g. \"arr\", \"burn_rate\""},
            "period": {"type": "string", "description": "e.g. \"FY2025\""},
        },
        "required": ["data_type"],
    },
}

LIST_SHEETS_TOOL: dict[str, Any] = {
    "name": "list_available_sheets",
    "description": "Lists the tabs of the budget and financial model spreadsheets.",
    "input_schema": {
        "type": "object",
        "properties": {
            "sheet_type": {"type": "string", "enum": ["budget", "model", "all"]},
        },
        "required": ["sheet_type"],
    },
}

BALANCE_TOOLS = [
    ACCOUNT_BALANCE_TOOL,
    LIST_ACCOUNT_CATEGORIES_TOOL,
    TRIAL_BALANCE_TOOL,
    CACHE_STATUS_TOOL,
]

LEDGER_API_TOOLS = [CALL_LEDGER_API_TOOL, ARR_WATERFALL_TOOL]

SHEETS_TOOLS = [BUDGET_DATA_TOOL, FINANCIAL_MODEL_TOOL, LIST_SHEETS_TOOL]

ALL_TOOLS = BALANCE_TOOLS + LEDGER_API_TOOLS + SHEETS_TOOLS
