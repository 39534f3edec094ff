"""
e-doğrula: Django admin registration.
Reporter contact details are masked in list views; full data only in detail.
"""

from django.contrib import admin

from .models import (
    ApplyRequest,
    Article,
    Blacklist,
    BlacklistSupport,
    Business,
    Featured,
    Page,
    Report,
    Review,
    UserProfile,
    VerificationCode,
    VerificationRequest,
)


def mask_contact(value, visible=2):
    """Mask for list display; do not log."""
    if not value or len(value) < 4:
        return "••••"
    return value[:2] + "••••" + value[-visible:]


@admin.register(VerificationRequest)
class VerificationRequestAdmin(admin.ModelAdmin):
    list_display = ['pk', 'name', 'instagram_username', 'phone', 'city', 'status', 'created_at']
    list_filter = ['status', 'city']
    search_fields = ['name', 'trade_title', 'business_name', 'instagram_username', 'phone', 'email']
    readonly_fields = ['created_at', 'updated_at', 'reviewed_at']
    raw_id_fields = ['business', 'reviewed_by']


@admin.register(ApplyRequest)
class ApplyRequestAdmin(admin.ModelAdmin):
    list_display = ['pk', 'business_name', 'phone_mobile', 'doc_count', 'image_count', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['business_name', 'legal_name', 'instagram', 'phone_mobile', 'email']
    readonly_fields = ['doc_count', 'image_count', 'folder', 'created_at', 'updated_at']
    raw_id_fields = ['business', 'reviewed_by']


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['pk', 'name', 'slug', 'instagram_username', 'phone', 'verified', 'featured', 'status']
    list_filter = ['status', 'verified', 'featured', 'city']
    search_fields = ['name', 'slug', 'handle', 'instagram_username', 'phone']


class BlacklistSupportInline(admin.TabularInline):
    model = BlacklistSupport
    extra = 0
    fields = ['name', 'comment', 'status', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Blacklist)
class BlacklistAdmin(admin.ModelAdmin):
    list_display = ['pk', 'name', 'business_slug', 'instagram_username', 'severity', 'status', 'is_deleted']
    list_filter = ['status', 'severity', 'is_deleted']
    search_fields = ['name', 'business_name', 'business_slug', 'instagram_username', 'phone_digits']
    raw_id_fields = ['business']
    filter_horizontal = ['reports']
    inlines = [BlacklistSupportInline]


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ['pk', 'name', 'instagram_username', 'masked_email', 'support_count', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['name', 'instagram_username', 'phone', 'desc']
    readonly_fields = ['created_by_ip', 'user_agent', 'supporters', 'support_count', 'last_supported_at']

    @admin.display(description='Reporter')
    def masked_email(self, obj):
        return mask_contact(obj.reporter_email)


@admin.register(Featured)
class FeaturedAdmin(admin.ModelAdmin):
    list_display = ['pk', 'business', 'place', 'type', 'order', 'active', 'start_at', 'end_at']
    list_filter = ['active', 'place', 'type']
    raw_id_fields = ['business']


@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'place', 'pinned', 'status', 'order']
    list_filter = ['status', 'pinned']
    search_fields = ['title', 'slug']


@admin.register(Page)
class PageAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'status', 'order']
    search_fields = ['title', 'slug']


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'is_verified', 'login_attempts', 'locked_until', 'last_login_at']
    list_filter = ['role']


@admin.register(VerificationCode)
class VerificationCodeAdmin(admin.ModelAdmin):
    list_display = ['pk', 'masked_email', 'purpose', 'attempts', 'used_at', 'expires_at', 'created_at']
    list_filter = ['purpose']
    exclude = ['code_hashed']
    readonly_fields = ['created_at']

    def masked_email(self, obj):
        return mask_contact(obj.email, 4)
    masked_email.short_description = 'Email'


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['pk', 'business', 'rating', 'author', 'status', 'source', 'created_at']
    list_filter = ['status', 'rating', 'source']
    search_fields = ['author', 'comment', 'business__name']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['business']
