from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _
from invoicing_core.models import Company, EntityMembership, User
from .forms import UserAdminChangeForm, UserAdminCreationForm
from .mixins import TenantAdminMixin


# Register `Company` model in admin with this custom config
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "gstin", "state_code", "invoice_prefix", "created_at")
    search_fields = ("name", "slug", "gstin")
    ordering = ("name",)
    # the counter only moves forward through next_invoice_number()
    readonly_fields = ("invoice_next_number",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        # a company is visible to its members only
        return qs.filter(memberships__user=request.user, memberships__is_active=True).distinct()


# Extend stock `DjangoUserAdmin`
@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    add_form = UserAdminCreationForm
    form = UserAdminChangeForm
    model = User

    list_display = (
        "username", "email", "get_full_name", "is_staff", "default_company")
    list_filter = ("is_staff", "is_superuser", "is_active")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Personal info"), {"fields":
                              ("first_name", "last_name", "email", "phone")}),
        (_("Company / Defaults"), {"fields": ("default_company",)}),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                ),
            },
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "username",
                    "email",
                    "default_company",
                    "password1",
                    "password2",
                ),
            },
        ),
    )

    # Tenant scoping:
    # limit visible users to memberships of the request.user's companies
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        allowed_company_ids = request.user.memberships.values_list(
            "company_id", flat=True
        )
        return qs.filter(
            memberships__company_id__in=allowed_company_ids).distinct()


def _admin_company_ids(user):
    return set(
        user.memberships.filter(role="admin", is_active=True)
        .values_list("company_id", flat=True)
    )


# Register EntityMembership model
@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "company")
    search_fields = ("user__username", "user__email", "company__name")
    readonly_fields = ("created_at",)
    ordering = ("company__name", "user__username")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "user")

    # Only company admins manage memberships
    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        company_ids = _admin_company_ids(request.user)
        if obj is None:
            return bool(company_ids)
        return obj.company_id in company_ids

    def has_delete_permission(self, request, obj=None):
        return self.has_change_permission(request, obj)

    def has_add_permission(self, request):
        if request.user.is_superuser:
            return True
        return bool(_admin_company_ids(request.user))
