# agency/permissions.py
"""
RBAC helpers for Managers vs Agents.
Managers see every quotation and all money screens; agents work on their own
quotations and only reach financial pages when granted the permission.
"""


def is_manager(user):
    """Check if user is a Manager (superuser or in Managers group)."""
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or user.groups.filter(name="Managers").exists()


def is_agent(user):
    """Check if user is an Agent (staff but not manager)."""
    if not user or not user.is_authenticated:
        return False
    return user.is_staff and not is_manager(user)


def can_view_all_queries(user):
    return is_manager(user) or user.has_perm("agency.view_all_queries")


def can_manage_financials(user):
    """Check if user can touch money records (sales, payments, accounts...)."""
    return is_manager(user) or user.has_perm("agency.manage_financials")


def can_view_financial_dashboard(user):
    """Check if user can view the financial dashboard and ledgers."""
    return is_manager(user) or user.has_perm("agency.view_financial_dashboard")


def can_access_query(user, query):
    """
    Managers: all quotations
    Agents: only quotations they created
    """
    if can_view_all_queries(user):
        return True
    return query.created_by_id == user.pk


def get_accessible_queries_queryset(user, base_queryset):
    if can_view_all_queries(user):
        return base_queryset
    return base_queryset.filter(created_by=user)
