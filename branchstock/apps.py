"""Django app configuration for Branchstock."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BranchstockConfig(AppConfig):
    """Configuration for Branchstock app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "branchstock"
    verbose_name = _("Branch stock")
