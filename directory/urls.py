"""
e-doğrula: API routes. Literal segments (export.csv, bulk, ...) come before
the <key> patterns they would otherwise match.
"""

from django.urls import path, re_path

from .views import (
    applications,
    apply,
    auth,
    blacklist,
    businesses,
    cms,
    featured,
    google,
    reports,
    reviews,
    uploads,
)

urlpatterns = [
    # Auth
    path('api/auth/login', auth.login, name='auth_login'),
    path('api/auth/me', auth.me, name='auth_me'),
    path('api/auth/logout', auth.logout, name='auth_logout'),
    path('api/auth/admin-check', auth.admin_email_check, name='auth_admin_check'),
    path('api/auth/send-code', auth.send_code, name='auth_send_code'),
    path('api/auth/verify-code', auth.verify_code, name='auth_verify_code'),

    # Public
    path('api/apply', apply.apply, name='apply'),
    path('api/report', reports.report_collection, name='report_collection'),
    path('api/report/<str:report_id>/support', reports.report_support, name='report_support'),
    path('api/report/<str:report_id>', reports.report_public_detail, name='report_public_detail'),
    path('api/blacklist', blacklist.blacklist_collection, name='public_blacklist_collection'),
    path('api/blacklist/<str:key>/supports', blacklist.public_blacklist_support, name='public_blacklist_supports'),
    path('api/blacklist/<str:key>/support', blacklist.public_blacklist_support, name='public_blacklist_support'),
    path('api/blacklist/<str:key>', blacklist.public_blacklist_detail, name='public_blacklist_detail'),
    path('api/featured', featured.featured_public_list, name='featured_public_list'),
    path('api/featured/export.csv', featured.featured_export, name='featured_export'),
    path('api/businesses/search', businesses.business_search, name='business_search'),
    path('api/businesses/by-slug/<str:slug>', businesses.business_by_slug, name='business_by_slug'),
    path('api/businesses/handle/<str:handle>', businesses.business_by_handle, name='business_by_handle'),
    path('api/businesses/<str:key>', businesses.business_public_detail, name='business_public_detail'),
    path('api/reviews', reviews.review_collection, name='review_collection'),
    path('api/reviews/for/<str:key>', reviews.reviews_for, name='reviews_for'),
    path('api/google/reviews', google.google_reviews, name='google_reviews'),
    path('api/google/reviews/search', google.google_reviews_search, name='google_reviews_search'),
    path('api/knowledge/geo/knowledge', google.geo_knowledge, name='geo_knowledge'),
    path('api/cms/articles/featured', cms.featured_articles, name='cms_featured_articles'),
    path('api/cms/article/by-slug/<str:slug>', cms.article_by_slug, name='cms_article_by_slug'),
    path('api/cms/page/by-slug/<str:slug>', cms.page_by_slug, name='cms_page_by_slug'),
    path('api/uploads/business', uploads.business_upload, name='business_upload'),

    # Admin
    path('api/admin/_whoami', auth.whoami, name='admin_whoami'),
    path('api/admin/me', businesses.admin_me, name='admin_me'),
    path('api/admin/uploads/business', uploads.business_upload, name='admin_business_upload'),

    path('api/admin/applications', applications.application_collection, name='admin_applications'),
    path('api/admin/applications/export.csv', applications.application_export, name='admin_applications_export'),
    path('api/admin/applications/bulk', applications.application_bulk, name='admin_applications_bulk'),
    path('api/admin/applications/<str:app_id>/approve', applications.application_approve, name='admin_application_approve'),
    path('api/admin/applications/<str:app_id>/reject', applications.application_reject, name='admin_application_reject'),
    path('api/admin/applications/<str:app_id>', applications.application_detail, name='admin_application_detail'),

    path('api/admin/businesses', businesses.business_collection, name='admin_businesses'),
    path('api/admin/businesses/export.csv', businesses.business_export, name='admin_businesses_export'),
    path('api/admin/businesses/bulk', businesses.business_bulk, name='admin_businesses_bulk'),
    path('api/admin/businesses/<str:key>/cover', businesses.business_cover, name='admin_business_cover'),
    path('api/admin/businesses/<str:key>', businesses.business_detail, name='admin_business_detail'),

    path('api/admin/blacklist', blacklist.blacklist_collection, name='admin_blacklist'),
    path('api/admin/blacklist/export.csv', blacklist.blacklist_export, name='admin_blacklist_export'),
    path('api/admin/blacklist/bulk', blacklist.blacklist_bulk, name='admin_blacklist_bulk'),
    path('api/admin/blacklist/<str:key>/supports', blacklist.blacklist_supports, name='admin_blacklist_supports'),
    path(
        'api/admin/blacklist/<str:key>/supports/<str:sid>',
        blacklist.blacklist_support_detail,
        name='admin_blacklist_support_detail',
    ),
    path('api/admin/blacklist/<str:key>', blacklist.blacklist_detail, name='admin_blacklist_detail'),

    path('api/admin/featured', featured.featured_collection, name='admin_featured'),
    path('api/admin/featured/bulk', featured.featured_bulk, name='admin_featured_bulk'),
    path('api/admin/featured/reorder', featured.featured_reorder, name='admin_featured_reorder'),
    path('api/admin/featured/<str:featured_id>', featured.featured_detail, name='admin_featured_detail'),

    path('api/admin/reports', reports.admin_report_collection, name='admin_reports'),
    path('api/admin/reports/export.csv', reports.report_export, name='admin_reports_export'),
    path('api/admin/reports/bulk', reports.report_bulk, name='admin_reports_bulk'),
    path('api/admin/reports/<str:report_id>/blacklist', reports.report_to_blacklist, name='admin_report_blacklist'),
    path('api/admin/reports/<str:report_id>', reports.report_detail, name='admin_report_detail'),

    re_path(r'^api/admin/cms/(?P<kind>articles|pages)$', cms.content_collection, name='admin_cms_collection'),
    re_path(
        r'^api/admin/cms/(?P<kind>articles|pages)/(?P<content_id>[^/]+)$',
        cms.content_detail,
        name='admin_cms_detail',
    ),
]
