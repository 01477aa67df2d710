"""
Role-based permissions for organization staff.
"""

from typing import Optional

ROLES = (
    "master_admin",
    "org_admin",
    "event_manager",
    "finance_manager",
    "poros_coordinator",
    "salve_coordinator",
    "rapha_coordinator",
    "staff",
    "group_leader",
    "individual",
    "parent",
    "salve_user",
    "rapha_user",
)

ADMIN_ROLES = ROLES[:8]

ALL_PERMISSIONS = (
    "events.view",
    "events.create",
    "events.edit",
    "events.delete",
    "registrations.view",
    "registrations.edit",
    "registrations.delete",
    "registrations.view_payments",
    "payments.view",
    "payments.process",
    "payments.refund",
    "payments.record_manual",
    "reports.view",
    "reports.view_basic",
    "reports.view_financial",
    "reports.export",
    "forms.view",
    "forms.edit",
    "poros.access",
    "salve.access",
    "rapha.access",
    "portals.poros.view",
    "portals.salve.view",
    "portals.rapha.view",
    "medical.view",
    "medical.edit",
    "team.manage",
    "settings.view",
    "settings.edit",
)


def _coordinator(module: str, *extra: str) -> frozenset:
    return frozenset(
        (
            "events.view",
            "registrations.view",
            f"{module}.access",
            f"portals.{module}.view",
            "reports.view",
            "reports.view_basic",
            "settings.view",
        )
        + extra
    )


ROLE_PERMISSIONS = {
    "master_admin": frozenset(ALL_PERMISSIONS),
    "org_admin": frozenset(ALL_PERMISSIONS),
    "event_manager": frozenset(
        (
            "events.view",
            "events.create",
            "events.edit",
            "registrations.view",
            "registrations.edit",
            "reports.view",
            "reports.view_basic",
            "poros.access",
            "salve.access",
            "portals.poros.view",
            "portals.salve.view",
            "forms.view",
            "settings.view",
        )
    ),
    "finance_manager": frozenset(
        (
            "events.view",
            "registrations.view",
            "registrations.view_payments",
            "payments.view",
            "payments.process",
            "payments.refund",
            "payments.record_manual",
            "reports.view",
            "reports.view_basic",
            "reports.view_financial",
            "reports.export",
            "settings.view",
        )
    ),
    "poros_coordinator": _coordinator("poros", "forms.view", "forms.edit"),
    "salve_coordinator": _coordinator("salve"),
    "rapha_coordinator": _coordinator("rapha", "forms.view", "medical.view", "medical.edit"),
    "staff": frozenset(
        ("events.view", "registrations.view", "reports.view", "reports.view_basic", "settings.view")
    ),
}


def is_admin_role(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def get_permissions(role: Optional[str], overrides: Optional[dict] = None) -> set:
    permissions = set(ROLE_PERMISSIONS.get(role, frozenset()))
    for permission, granted in (overrides or {}).items():
        if granted:
            permissions.add(permission)
        else:
            permissions.discard(permission)
    return permissions


def has_permission(role: Optional[str], permission: str, overrides: Optional[dict] = None) -> bool:
    return permission in get_permissions(role, overrides)
