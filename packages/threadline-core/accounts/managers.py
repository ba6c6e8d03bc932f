from django.db import models


class OrganizationScopedQuerySet(models.QuerySet):
    """
    Base queryset for team-scoped resources.

    Teams are django-organizations ``Organization`` rows. Any model with an
    ``organization`` ForeignKey can use this as its manager to filter by team
    membership.

    Example usage:
        class Channel(models.Model):
            organization = models.ForeignKey('organizations.Organization', on_delete=models.CASCADE)

            objects = OrganizationScopedQuerySet.as_manager()

        channels = Channel.objects.for_user(request.user)
    """

    def for_user(self, user):
        """
        Filter resources to those owned by teams the user belongs to.

        Args:
            user: Django User instance

        Returns:
            Filtered queryset containing only accessible resources
        """
        if not user or not user.is_authenticated:
            return self.none()
        return self.filter(
            organization__organization_users__user=user
        ).distinct()

    def for_organization(self, organization):
        """Filter resources to a specific team."""
        return self.filter(organization=organization)

    def for_project(self, project):
        """Filter resources to a specific project."""
        return self.filter(project=project)
