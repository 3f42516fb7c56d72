# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- ACCOUNTS --

ACCOUNT_PERMISSIONS = [
    (
        "VIEW_ACCOUNTS",
        "View Accounts",
        "View own profile and the accounts you created",
        PermissionCategory.ACCOUNTS,
    ),
    (
        "CREATE_ACCOUNTS",
        "Create Accounts",
        "Create subordinate dealer/retailer accounts",
        PermissionCategory.ACCOUNTS,
    ),
    (
        "MANAGE_ACCOUNT_STATUS",
        "Manage Account Status",
        "Activate or deactivate accounts you manage",
        PermissionCategory.ACCOUNTS,
    ),
    (
        "DELETE_ACCOUNTS",
        "Delete Accounts",
        "Delete accounts you manage (codes and ledger are kept)",
        PermissionCategory.ACCOUNTS,
    ),
]


# -- CODES --

CODE_PERMISSIONS = [
    (
        "VIEW_CODES",
        "View Codes",
        "List codes held by an account",
        PermissionCategory.CODES,
    ),
    (
        "ASSIGN_CODES",
        "Assign Codes",
        "Give codes to another account (Admin: generate new codes)",
        PermissionCategory.CODES,
    ),
    (
        "RETRIEVE_CODES",
        "Retrieve Codes",
        "Take codes back from another account",
        PermissionCategory.CODES,
    ),
]


# -- LEDGER --

LEDGER_PERMISSIONS = [
    (
        "VIEW_TRANSFERS",
        "View Transfers",
        "View an account's code transfer history",
        PermissionCategory.LEDGER,
    ),
]


PERMISSION_DEFINITIONS = (
    ACCOUNT_PERMISSIONS
    + CODE_PERMISSIONS
    + LEDGER_PERMISSIONS
)
