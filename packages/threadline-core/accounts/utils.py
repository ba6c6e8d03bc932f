"""
Utility functions for team membership checks.

Teams are django-organizations ``Organization`` rows; membership is an
``OrganizationUser`` row. The identity provider itself is external and is
consumed only as Django's authenticated ``request.user``.
"""

from django.contrib.auth import get_user_model
from organizations.models import OrganizationUser

User = get_user_model()


def get_user_organization(user):
    """
    Get the active team for a user.

    Returns the first team the user belongs to.

    Args:
        user: Django User instance

    Returns:
        Organization instance or None if user doesn't belong to any team
    """
    if not user or not user.is_authenticated:
        return None

    org_user = OrganizationUser.objects.filter(user=user).select_related('organization').first()
    return org_user.organization if org_user else None


def is_organization_member(user, organization) -> bool:
    """Check whether a user belongs to a team."""
    if not user or not user.is_authenticated or organization is None:
        return False

    return OrganizationUser.objects.filter(
        organization=organization,
        user=user,
    ).exists()


def user_can_access_project(user, project) -> bool:
    """
    Check whether a user may act on a project.

    Access follows team membership: any member of the project's team may
    read threads, redeem pairing codes and manage channels.
    """
    if project is None:
        return False
    return is_organization_member(user, project.organization)


def get_accessible_project(user, project_id):
    """
    Load a project the user may access.

    Returns:
        Project instance or None when missing or not accessible
    """
    from projects.models import Project

    project = Project.objects.select_related('organization').filter(id=project_id).first()
    if project is None or not user_can_access_project(user, project):
        return None
    return project
