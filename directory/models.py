"""
e-doğrula: directory models.

- VerificationRequest: business verification application (current schema, keeps legacy columns).
- ApplyRequest: legacy application rows written by the old apply form.
- Business: canonical public directory entry; upserted on application approval.
- Blacklist / BlacklistSupport: flagged businesses and public support comments.
- Report: user complaint with evidence files and idempotent supports.
- Featured: scheduled promotional slot for a business.
- Article / Page: CMS content.
- UserProfile: role and login lockout state for Django users.
- VerificationCode: hashed one-time email codes.
- Review: visitor ratings and comments for a business.
"""

import logging
import re
from datetime import timedelta

from django.conf import settings
from django.db import models, transaction
from django.db.models import Max, Q
from django.utils import timezone

from .normalization import (
    MAX_GALLERY,
    INSTAGRAM_LINK_RE,
    as_list,
    cap_and_normalize_docs,
    clean,
    clean_path,
    derive_address,
    extract_gallery,
    norm_city,
    norm_district,
    norm_email,
    normalize_instagram,
    normalize_phone,
    normalize_url,
    parse_consent,
    phone_digits,
    slugify_tr,
    to_https,
    uniq_strings,
)

LEGACY_FOLDER_RE = re.compile(r'^/?uploads/apply/([^/]+)')
UNNAMED_BUSINESS = 'İsimsiz İşletme'

logger = logging.getLogger(__name__)


def iso(value):
    return value.isoformat() if value else None


def _prune(data):
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Verification requests
# ---------------------------------------------------------------------------

VR_INSTAGRAM_INPUTS = ('instagram_username', 'instagram_url', 'instagram')
VR_PHONE_INPUTS = ('phone', 'landline', 'phone_mobile', 'phone_fixed')
VR_LOCATION_INPUTS = ('city', 'district')
VR_DOCUMENT_INPUTS = ('documents', 'docs', 'images')


def normalize_request_fields(data, partial=False):
    """
    Normalize a VerificationRequest field dict (snake_case keys).

    With ``partial=True`` only groups whose inputs appear in ``data`` are
    touched and absent results are dropped, so an update never clobbers
    stored values it did not mention.
    """
    out = dict(data)

    def has(keys):
        return any(k in data for k in keys)

    if not partial or has(VR_INSTAGRAM_INPUTS):
        ig = normalize_instagram(
            data.get('instagram_username'),
            data.get('instagram_url'),
            data.get('instagram'),
        )
        out['instagram_username'] = ig['username']
        out['instagram_url'] = ig['url']

    if not partial or has(VR_PHONE_INPUTS):
        out['phone'] = normalize_phone(data.get('phone') or data.get('phone_mobile'))
        out['landline'] = normalize_phone(data.get('landline') or data.get('phone_fixed'))

    if data.get('email'):
        out['email'] = norm_email(data['email'])
    if data.get('website'):
        out['website'] = to_https(data['website'])

    has_location = has(VR_LOCATION_INPUTS)
    if not partial or has_location:
        out['city'] = norm_city(data.get('city'))
        out['district'] = norm_district(data.get('district'))

    if not partial and not clean(data.get('address')):
        out['address'] = derive_address(out.get('district'), out.get('city')) or None

    if not partial or has(VR_DOCUMENT_INPUTS):
        combined = []
        for key in VR_DOCUMENT_INPUTS:
            items = as_list(data.get(key))
            combined.extend(items)
            if key != 'documents' and key in data:
                out[key] = items
        out['documents'] = cap_and_normalize_docs(combined)

    if partial:
        return _prune(out)
    return out


class VerificationRequest(models.Model):
    """Business verification application. Legacy column names are kept for old rows."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        IN_REVIEW = 'in_review', 'In review'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        ARCHIVED = 'archived', 'Archived'
        SPAM = 'spam', 'Spam'

    name = models.CharField(max_length=255, blank=True)
    trade_title = models.CharField(max_length=255, blank=True)
    type = models.CharField(max_length=120, blank=True)
    instagram_username = models.CharField(max_length=80, blank=True, db_index=True)
    instagram_url = models.CharField(max_length=300, blank=True)
    phone = models.CharField(max_length=32, blank=True, db_index=True)
    landline = models.CharField(max_length=32, blank=True)
    city = models.CharField(max_length=64, blank=True, db_index=True)
    district = models.CharField(max_length=64, blank=True, db_index=True)
    address = models.CharField(max_length=256, blank=True)
    email = models.CharField(max_length=254, blank=True, db_index=True)
    website = models.CharField(max_length=300, blank=True)
    note = models.TextField(blank=True, default='')
    documents = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    reject_reason = models.TextField(blank=True, default='')
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+',
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    business = models.ForeignKey(
        'Business', null=True, blank=True, on_delete=models.SET_NULL, related_name='verification_requests',
    )

    # legacy columns
    business_name = models.CharField(max_length=255, blank=True)
    legal_name = models.CharField(max_length=255, blank=True)
    phone_mobile = models.CharField(max_length=32, blank=True)
    phone_fixed = models.CharField(max_length=32, blank=True)
    instagram = models.CharField(max_length=300, blank=True)
    docs = models.JSONField(default=list, blank=True)
    images = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    NORMALIZED_FIELDS = (
        'instagram_username', 'instagram_url', 'instagram', 'phone', 'landline',
        'phone_mobile', 'phone_fixed', 'email', 'website', 'city', 'district',
        'address', 'documents', 'docs', 'images',
    )

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Verification request'
        indexes = [
            models.Index(fields=['email', 'status', 'created_at'], name='vr_email_status_idx'),
            models.Index(fields=['city', 'district', 'created_at'], name='vr_city_district_idx'),
        ]

    def __str__(self):
        return self.name_resolved or f'Request #{self.pk}'

    def save(self, *args, **kwargs):
        self.normalize()
        super().save(*args, **kwargs)

    def normalize(self):
        data = {f: getattr(self, f) for f in self.NORMALIZED_FIELDS}
        for key, value in normalize_request_fields(data, partial=False).items():
            if key in ('documents', 'docs', 'images'):
                setattr(self, key, value or [])
            else:
                setattr(self, key, value or '')

    @classmethod
    def apply_update(cls, pk, changes):
        """
        Partial update: normalize only the fields present in ``changes``.

        The address is derived from city/district only when the stored
        address is empty. Returns the refreshed row, or None when missing.
        """
        obj = cls.objects.filter(pk=pk).first()
        if obj is None:
            return None
        update = normalize_request_fields(changes, partial=True)
        if any(k in changes for k in VR_LOCATION_INPUTS) and not update.get('address') and not obj.address:
            update['address'] = derive_address(
                update.get('district', obj.district), update.get('city', obj.city),
            ) or None
            update = _prune(update)
        concrete = {f.name for f in cls._meta.concrete_fields} | {'reviewed_by_id', 'business_id'}
        update = {k: v for k, v in update.items() if k in concrete}
        update['updated_at'] = timezone.now()
        cls.objects.filter(pk=pk).update(**update)
        obj.refresh_from_db()
        return obj

    @property
    def request_id(self):
        return str(self.pk) if self.pk else None

    @property
    def name_resolved(self):
        return self.name or self.business_name or ''

    @property
    def trade_title_resolved(self):
        return self.trade_title or self.legal_name or ''

    @property
    def phone_resolved(self):
        return self.phone or self.phone_mobile or ''

    @property
    def landline_resolved(self):
        return self.landline or self.phone_fixed or ''

    @property
    def instagram_url_resolved(self):
        return self.instagram_url or self.instagram or ''

    def to_json(self):
        """Single clean shape: legacy columns folded into canonical keys and left out."""
        username = self.instagram_username
        url = self.instagram_url_resolved
        if not username and url:
            match = INSTAGRAM_LINK_RE.search(url)
            if match:
                username = match.group(1).lstrip('@').lower()
        documents = self.documents or []
        if not documents:
            documents = cap_and_normalize_docs(as_list(self.docs) + as_list(self.images))
        city = self.city or ''
        district = self.district or ''
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'requestId': self.request_id,
            'name': self.name_resolved,
            'tradeTitle': self.trade_title_resolved,
            'type': self.type,
            'instagramUsername': username or '',
            'instagramUrl': url,
            'phone': self.phone_resolved,
            'landline': self.landline_resolved,
            'email': self.email,
            'website': self.website,
            'city': city,
            'district': district,
            'address': self.address or derive_address(district, city),
            'note': self.note,
            'documents': documents,
            'status': self.status,
            'rejectReason': self.reject_reason,
            'reviewedBy': self.reviewed_by_id,
            'reviewedAt': iso(self.reviewed_at),
            'business': self.business_id,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


class ApplyRequest(models.Model):
    """Legacy application row (old apply form). Read and moderated alongside VerificationRequest."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        IN_REVIEW = 'in_review', 'In review'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        ARCHIVED = 'archived', 'Archived'

    business_name = models.CharField(max_length=255)
    legal_name = models.CharField(max_length=255, blank=True)
    type = models.CharField(max_length=120, blank=True)
    address = models.CharField(max_length=256, blank=True)
    city = models.CharField(max_length=64, blank=True)
    district = models.CharField(max_length=64, blank=True)
    phone_mobile = models.CharField(max_length=32, blank=True)
    phone_fixed = models.CharField(max_length=32, blank=True)
    instagram = models.CharField(max_length=300, blank=True)
    website = models.CharField(max_length=300, blank=True)
    email = models.CharField(max_length=254, blank=True)
    note = models.TextField(blank=True, default='')
    docs = models.JSONField(default=list, blank=True)
    images = models.JSONField(default=list, blank=True)
    doc_count = models.PositiveIntegerField(default=0)
    image_count = models.PositiveIntegerField(default=0)
    folder = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    terms_accepted = models.BooleanField(default=False)
    reviewer_note = models.TextField(blank=True, default='')
    rejection_reason = models.TextField(blank=True, default='')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+',
    )
    business = models.ForeignKey(
        'Business', null=True, blank=True, on_delete=models.SET_NULL, related_name='legacy_applications',
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Legacy application'

    def __str__(self):
        return self.business_name

    @staticmethod
    def _clean_paths(paths):
        return ['/' + clean_path(p) for p in as_list(paths) if isinstance(p, str) and p.strip()]

    def save(self, *args, **kwargs):
        self.business_name = clean(self.business_name)
        self.website = normalize_url(self.website)
        self.email = norm_email(self.email)
        self.docs = self._clean_paths(self.docs)
        self.images = self._clean_paths(self.images)
        self.doc_count = len(self.docs)
        self.image_count = len(self.images)
        if not self.folder:
            for path in self.docs + self.images:
                match = LEGACY_FOLDER_RE.match(path)
                if match:
                    self.folder = match.group(1)
                    break
        super().save(*args, **kwargs)

    @property
    def folder_id(self):
        for path in as_list(self.docs) + as_list(self.images):
            match = LEGACY_FOLDER_RE.match(path)
            if match:
                return match.group(1)
        return self.folder or None

    def to_json(self):
        ig = normalize_instagram(legacy=self.instagram)
        documents = cap_and_normalize_docs(as_list(self.docs) + as_list(self.images))
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'name': self.business_name,
            'tradeTitle': self.legal_name,
            'type': self.type,
            'instagramUsername': ig['username'] or '',
            'instagramUrl': ig['url'] or '',
            'phone': normalize_phone(self.phone_mobile) or '',
            'landline': normalize_phone(self.phone_fixed) or '',
            'email': self.email,
            'website': self.website,
            'city': self.city,
            'district': self.district,
            'address': self.address or derive_address(self.district, self.city),
            'note': self.note,
            'documents': documents,
            'status': self.status,
            'rejectReason': self.rejection_reason,
            'reviewerNote': self.reviewer_note,
            'termsAccepted': self.terms_accepted,
            'reviewedAt': iso(self.reviewed_at),
            'business': self.business_id,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Businesses
# ---------------------------------------------------------------------------

def normalize_business_fields(data, partial=False):
    """Business counterpart of normalize_request_fields."""
    out = dict(data)

    if not out.get('slug') and out.get('name'):
        out['slug'] = slugify_tr(out['name'])
    if out.get('slug'):
        out['slug'] = slugify_tr(out['slug'])

    has_ig = any(k in data for k in ('instagram_username', 'instagram_url', 'handle'))
    if not partial or has_ig:
        ig = normalize_instagram(data.get('instagram_username'), data.get('instagram_url'))
        out['instagram_username'] = f"@{ig['username']}" if ig['username'] else None
        out['instagram_url'] = ig['url']
        if not out.get('handle') and ig['username']:
            out['handle'] = ig['username']
        if out.get('handle'):
            out['handle'] = str(out['handle']).lstrip('@').lower()

    if not partial or 'phone' in data or 'phones' in data:
        main = normalize_phone(data.get('phone'))
        extras = data.get('phones') if isinstance(data.get('phones'), list) else []
        normalized = uniq_strings(p for p in (normalize_phone(x) for x in [main] + extras) if p)
        out['phone'] = main or (normalized[0] if normalized else None)
        out['phones'] = uniq_strings([out['phone']] + normalized) if out['phone'] else normalized

    if out.get('email'):
        out['email'] = clean(out['email'])
    for key in ('website', 'booking_url'):
        if out.get(key):
            out[key] = to_https(out[key])

    if (not partial or 'features' in data) and isinstance(out.get('features'), list):
        out['features'] = uniq_strings(out['features'])
    if not partial or 'gallery' in data:
        out['gallery'] = extract_gallery(out.get('gallery'))[:MAX_GALLERY]

    if not partial or any(k in data for k in ('location', 'address', 'city', 'district')):
        location = dict(out.get('location') or {})
        for key in ('address', 'city', 'district'):
            if not location.get(key) and out.get(key):
                location[key] = out[key]
            if not out.get(key) and location.get(key):
                out[key] = location[key]
        out['location'] = location

    for key in ('rating', 'reviews_count', 'google_rating', 'google_reviews_count'):
        if out.get(key) is not None and out[key] < 0:
            out[key] = 0

    if partial:
        return _prune(out)
    return out


class Business(models.Model):
    """Canonical directory entry shown on the public site."""

    class Status(models.TextChoices):
        APPROVED = 'approved', 'Approved'
        PENDING = 'pending', 'Pending'
        REJECTED = 'rejected', 'Rejected'

    name = models.CharField(max_length=180)
    type = models.CharField(max_length=120, default='Bilinmiyor')
    slug = models.CharField(max_length=200, blank=True, db_index=True)
    handle = models.CharField(max_length=80, blank=True, db_index=True)
    instagram_username = models.CharField(max_length=80, blank=True)
    instagram_url = models.CharField(max_length=300, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    phones = models.JSONField(default=list, blank=True)
    email = models.CharField(max_length=254, blank=True)
    website = models.CharField(max_length=300, blank=True)
    booking_url = models.CharField(max_length=300, blank=True)
    address = models.CharField(max_length=300, blank=True)
    city = models.CharField(max_length=64, blank=True)
    district = models.CharField(max_length=64, blank=True)
    location = models.JSONField(default=dict, blank=True)
    description = models.TextField(blank=True, default='')
    summary = models.TextField(blank=True, default='')
    features = models.JSONField(default=list, blank=True)
    gallery = models.JSONField(default=list, blank=True)
    licence_no = models.CharField(max_length=80, blank=True)
    rating = models.FloatField(default=0)
    reviews_count = models.PositiveIntegerField(default=0)
    google_place_id = models.CharField(max_length=200, blank=True)
    google_rating = models.FloatField(default=0)
    google_reviews_count = models.PositiveIntegerField(default=0)
    google = models.JSONField(default=dict, blank=True)
    verified = models.BooleanField(default=False, db_index=True)
    featured = models.BooleanField(default=False)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    NORMALIZED_FIELDS = (
        'name', 'slug', 'handle', 'instagram_username', 'instagram_url', 'phone', 'phones',
        'email', 'website', 'booking_url', 'features', 'gallery', 'location', 'address',
        'city', 'district', 'rating', 'reviews_count', 'google_rating', 'google_reviews_count',
    )
    JSON_FIELDS = ('phones', 'features', 'gallery', 'location', 'google')
    # upsert match order, strongest identity first
    NATURAL_KEYS = ('phone', 'instagram_username', 'handle', 'slug')

    # payload key -> model field; aliases first match wins
    PAYLOAD_ALIASES = {
        'name': ('name',),
        'type': ('type',),
        'slug': ('slug',),
        'handle': ('handle',),
        'instagram_username': ('instagramUsername', 'instagram_username', 'instagram'),
        'instagram_url': ('instagramUrl', 'instagram_url'),
        'phone': ('phone',),
        'phones': ('phones',),
        'email': ('email',),
        'website': ('website',),
        'booking_url': ('bookingUrl', 'booking_url'),
        'address': ('address',),
        'city': ('city',),
        'district': ('district',),
        'location': ('location',),
        'description': ('description', 'desc'),
        'summary': ('summary',),
        'features': ('features',),
        'gallery': ('gallery', 'images', 'photos'),
        'licence_no': ('licenceNo', 'licence_no'),
        'rating': ('rating',),
        'reviews_count': ('reviewsCount', 'reviews_count'),
        'google_place_id': ('googlePlaceId', 'google_place_id'),
        'google_rating': ('googleRating', 'google_rating'),
        'google_reviews_count': ('googleReviewsCount', 'google_reviews_count'),
        'google': ('google',),
        'verified': ('verified',),
        'featured': ('featured',),
        'status': ('status',),
    }

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'Businesses'
        constraints = [
            models.UniqueConstraint(fields=['slug'], condition=~Q(slug=''), name='business_unique_slug'),
            models.UniqueConstraint(fields=['handle'], condition=~Q(handle=''), name='business_unique_handle'),
            models.UniqueConstraint(
                fields=['instagram_username'], condition=~Q(instagram_username=''),
                name='business_unique_instagram',
            ),
            models.UniqueConstraint(fields=['phone'], condition=~Q(phone=''), name='business_unique_phone'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.normalize()
        super().save(*args, **kwargs)

    def normalize(self):
        data = {f: getattr(self, f) for f in self.NORMALIZED_FIELDS}
        for key, value in normalize_business_fields(data, partial=False).items():
            if key in self.JSON_FIELDS:
                setattr(self, key, value or ({} if key == 'location' else []))
            elif value is None:
                setattr(self, key, 0 if key in ('rating', 'reviews_count', 'google_rating', 'google_reviews_count') else '')
            else:
                setattr(self, key, value)

    @classmethod
    def from_payload(cls, payload):
        """
        Map an API payload (camelCase, aliases) to normalized model fields.
        Only keys present in the payload come back, so the result is safe to
        apply onto an existing row.
        """
        data = {}
        for field, keys in cls.PAYLOAD_ALIASES.items():
            for key in keys:
                if key in payload and payload[key] is not None:
                    data[field] = payload[key]
                    break
        if 'gallery' in data:
            data['gallery'] = extract_gallery(data['gallery'])
        for field in ('verified', 'featured'):
            if field in data:
                data[field] = parse_consent(data[field])
        for field in ('rating', 'google_rating', 'reviews_count', 'google_reviews_count'):
            if field in data:
                try:
                    data[field] = float(data[field]) if 'rating' in field else int(data[field])
                except (TypeError, ValueError):
                    data.pop(field)
        if 'status' in data and data['status'] not in cls.Status.values:
            data.pop('status')
        return normalize_business_fields(data, partial=True) if data else {}

    @classmethod
    def upsert_by_natural_keys(cls, payload):
        """
        Create or update a business matched by phone, Instagram username,
        handle or slug, tried in that order; exact name when none is known.
        Keys already held by another row are dropped (a taken slug gets a
        suffix) so the save never trips the unique constraints.
        Returns (business, created).
        """
        data = cls.from_payload(payload)
        business = None
        if any(data.get(field) for field in cls.NATURAL_KEYS):
            for field in cls.NATURAL_KEYS:
                if data.get(field):
                    business = cls.objects.filter(**{field: data[field]}).order_by('created_at').first()
                    if business is not None:
                        break
        else:
            business = cls.objects.filter(name=data.get('name', '')).order_by('created_at').first()
        created = business is None
        if created:
            business = cls()
        cls._release_taken_keys(data, business)
        for field, value in data.items():
            setattr(business, field, value)
        business.save()
        return business, created

    @classmethod
    def _release_taken_keys(cls, data, business):
        others = cls.objects.exclude(pk=business.pk) if business.pk else cls.objects.all()
        phone = data.get('phone')
        if phone and others.filter(phone=phone).exists():
            logger.info('Upsert: phone %s belongs to another business, not copied', phone)
            data.pop('phone')
            data['phones'] = [p for p in data.get('phones') or [] if p != phone]
            if not business.phone and data['phones']:
                # the first extra number would be promoted to the main phone on save
                data['phones'] = [p for p in data['phones'] if not others.filter(phone=p).exists()]
        ig = data.get('instagram_username')
        if ig and others.filter(instagram_username=ig).exists():
            for key in ('instagram_username', 'instagram_url', 'handle'):
                data.pop(key, None)
        handle = data.get('handle')
        if handle and others.filter(handle=handle).exists():
            data.pop('handle')
            if not business.handle and (data.get('instagram_username') or '').lstrip('@') == handle:
                # the handle would be derived from the username again on save
                data.pop('instagram_username')
                data.pop('instagram_url', None)
        if data.get('slug') and others.filter(slug=data['slug']).exists():
            data['slug'] = cls.unique_slug(data['slug'], exclude_pk=business.pk)
        return data

    @classmethod
    def unique_slug(cls, base, exclude_pk=None):
        """'kule' -> 'kule', then 'kule-2', 'kule-3' while taken."""
        root = slugify_tr(base) or 'isletme'
        qs = cls.objects.all()
        if exclude_pk:
            qs = qs.exclude(pk=exclude_pk)
        slug, n = root, 2
        while qs.filter(slug=slug).exists():
            slug = f'{root}-{n}'
            n += 1
        return slug

    def to_json(self):
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'name': self.name,
            'type': self.type,
            'slug': self.slug,
            'handle': self.handle,
            'instagramUsername': self.instagram_username,
            'instagramUrl': self.instagram_url,
            'phone': self.phone,
            'phones': self.phones,
            'email': self.email,
            'website': self.website,
            'bookingUrl': self.booking_url,
            'address': self.address,
            'city': self.city,
            'district': self.district,
            'location': self.location,
            'description': self.description,
            'summary': self.summary,
            'features': self.features,
            'gallery': self.gallery,
            'photo': (self.gallery or [None])[0],
            'licenceNo': self.licence_no,
            'rating': self.rating,
            'reviewsCount': self.reviews_count,
            'googlePlaceId': self.google_place_id,
            'googleRating': self.google_rating,
            'googleReviewsCount': self.google_reviews_count,
            'verified': self.verified,
            'featured': self.featured,
            'status': self.status,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Reports and blacklist
# ---------------------------------------------------------------------------

class Report(models.Model):
    """Complaint about a business; evidence files are stored as public URLs."""

    class Status(models.TextChoices):
        OPEN = 'open', 'Open'
        REVIEWING = 'reviewing', 'Reviewing'
        CLOSED = 'closed', 'Closed'

    name = models.CharField(max_length=240, blank=True)
    instagram_username = models.CharField(max_length=80, blank=True)
    instagram_url = models.CharField(max_length=300, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    desc = models.TextField(max_length=8000, blank=True)
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='reports',
    )
    reporter_email = models.CharField(max_length=160, blank=True)
    reporter_name = models.CharField(max_length=160, blank=True)
    reporter_phone = models.CharField(max_length=32, blank=True)
    verified_email = models.CharField(max_length=160, blank=True)
    consent = models.BooleanField(default=False)
    policy_version = models.CharField(max_length=16, default='v1')
    created_by_ip = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    evidence_files = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.OPEN, db_index=True)
    support_count = models.PositiveIntegerField(default=0)
    supporters = models.JSONField(default=list, blank=True)
    last_supported_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    PAYLOAD_ALIASES = {
        'name': ('name',),
        'instagram_username': ('instagramUsername', 'instagram'),
        'instagram_url': ('instagramUrl',),
        'phone': ('phone',),
        'desc': ('desc', 'description'),
        'reporter_email': ('reporterEmail', 'email'),
        'reporter_name': ('reporterName',),
        'reporter_phone': ('reporterPhone',),
        'policy_version': ('policyVersion',),
        'verified_email': ('verifiedEmail',),
    }

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name or f'Report #{self.pk}'

    def save(self, *args, **kwargs):
        ig = normalize_instagram(self.instagram_username, self.instagram_url)
        self.instagram_username = f"@{ig['username']}" if ig['username'] else ''
        self.instagram_url = ig['url'] or ''
        self.phone = normalize_phone(self.phone) or ''
        self.reporter_phone = normalize_phone(self.reporter_phone) or ''
        self.reporter_email = norm_email(self.reporter_email)
        self.verified_email = norm_email(self.verified_email)
        self.evidence_files = uniq_strings(self.evidence_files)
        self.name = clean(self.name)[:240]
        self.desc = clean(self.desc)[:8000]
        super().save(*args, **kwargs)

    @classmethod
    def from_payload(cls, payload):
        data = {}
        for field, keys in cls.PAYLOAD_ALIASES.items():
            for key in keys:
                if payload.get(key) not in (None, ''):
                    data[field] = payload[key]
                    break
        data['consent'] = parse_consent(payload.get('consent'))
        evidence = payload.get('evidenceFiles') or payload.get('evidence') or payload.get('files') or []
        if isinstance(evidence, str):
            evidence = [evidence]
        data['evidence_files'] = uniq_strings(evidence)
        if payload.get('status') in cls.Status.values:
            data['status'] = payload['status']
        return data

    @classmethod
    def add_support(cls, pk, fingerprint):
        """Count a supporter once per fingerprint. Returns (updated, support_count)."""
        if not fingerprint:
            return False, 0
        with transaction.atomic():
            report = cls.objects.select_for_update().filter(pk=pk).first()
            if report is None:
                return False, 0
            if fingerprint in (report.supporters or []):
                return False, report.support_count
            report.supporters = list(report.supporters or []) + [fingerprint]
            report.support_count += 1
            report.last_supported_at = timezone.now()
            super(Report, report).save(update_fields=['supporters', 'support_count', 'last_supported_at', 'updated_at'])
            return True, report.support_count

    def to_json(self, masked=False):
        data = {
            '_id': str(self.pk),
            'id': str(self.pk),
            'name': self.name,
            'instagramUsername': self.instagram_username,
            'instagramUrl': self.instagram_url,
            'phone': self.phone,
            'desc': self.desc,
            'reporterEmail': self.reporter_email,
            'reporterName': self.reporter_name,
            'reporterPhone': self.reporter_phone,
            'verifiedEmail': self.verified_email,
            'consent': self.consent,
            'policyVersion': self.policy_version,
            'createdByIp': self.created_by_ip,
            'userAgent': self.user_agent,
            'evidenceFiles': self.evidence_files,
            'status': self.status,
            'supportCount': self.support_count,
            'lastSupportedAt': iso(self.last_supported_at),
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }
        if masked:
            for key in ('createdByIp', 'userAgent', 'reporterEmail', 'reporterPhone', 'verifiedEmail'):
                data.pop(key)
        return data


class Blacklist(models.Model):
    """Business flagged as untrustworthy. Soft-deleted via is_deleted."""

    class Severity(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        CRITICAL = 'critical', 'Critical'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        OPEN = 'open', 'Open'
        REMOVED = 'removed', 'Removed'

    name = models.CharField(max_length=240, blank=True)
    business = models.ForeignKey(
        Business, null=True, blank=True, on_delete=models.SET_NULL, related_name='blacklist_entries',
    )
    business_name = models.CharField(max_length=240, blank=True)
    business_slug = models.CharField(max_length=200, blank=True, db_index=True)
    instagram_username = models.CharField(max_length=80, blank=True, db_index=True)
    instagram_url = models.CharField(max_length=300, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    phone_digits = models.CharField(max_length=32, blank=True, db_index=True)
    desc = models.TextField(blank=True, default='')
    reason = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')
    severity = models.CharField(max_length=16, choices=Severity.choices, default=Severity.MEDIUM, db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    evidence_urls = models.JSONField(default=list, blank=True)
    reports = models.ManyToManyField(Report, blank=True, related_name='blacklist_entries')
    fingerprints = models.JSONField(default=list, blank=True)
    source = models.CharField(max_length=32, default='admin')
    created_by_ip = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'Blacklist'

    def __str__(self):
        return self.name or self.business_name or f'Blacklist #{self.pk}'

    def save(self, *args, **kwargs):
        ig = normalize_instagram(self.instagram_username, self.instagram_url)
        self.instagram_username = ig['username'] or ''
        self.instagram_url = ig['url'] or ''
        self.phone = normalize_phone(self.phone) or ''
        self.phone_digits = phone_digits(self.phone)
        self.name = clean(self.name) or self.business_name
        self.evidence_urls = uniq_strings(self.evidence_urls)
        self.fingerprints = [
            {'type': clean(f.get('type')).lower(), 'value': clean(f.get('value')), 'note': clean(f.get('note'))}
            for f in self.fingerprints or [] if isinstance(f, dict) and clean(f.get('value'))
        ]
        super().save(*args, **kwargs)

    @property
    def instagram_handle(self):
        return f'@{self.instagram_username}' if self.instagram_username else ''

    def to_json(self, with_supports=False):
        data = {
            '_id': str(self.pk),
            'id': str(self.pk),
            'name': self.name,
            'businessId': self.business_id,
            'businessName': self.business_name or self.name,
            'businessSlug': self.business_slug,
            'instagramUsername': self.instagram_username,
            'instagramHandle': self.instagram_handle,
            'instagramUrl': self.instagram_url,
            'phone': self.phone,
            'desc': self.desc,
            'reason': self.reason or self.desc,
            'notes': self.notes,
            'severity': self.severity,
            'status': self.status,
            'evidenceUrls': self.evidence_urls,
            'reportIds': [str(pk) for pk in self.reports.values_list('pk', flat=True)] if self.pk else [],
            'fingerprints': self.fingerprints,
            'source': self.source,
            'expiresAt': iso(self.expires_at),
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }
        if with_supports:
            data['supports'] = [s.to_json() for s in self.supports.all()]
        return data


class BlacklistSupport(models.Model):
    """Public comment backing a blacklist entry; moderated by admins."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        SPAM = 'spam', 'Spam'

    blacklist = models.ForeignKey(Blacklist, on_delete=models.CASCADE, related_name='supports')
    name = models.CharField(max_length=160, blank=True)
    contact = models.CharField(max_length=160, blank=True)
    comment = models.TextField(max_length=4000, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    created_by_ip = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def to_json(self):
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'blacklistId': str(self.blacklist_id),
            'name': self.name,
            'contact': self.contact,
            'comment': self.comment,
            'status': self.status,
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Featured slots
# ---------------------------------------------------------------------------

class Featured(models.Model):
    """Promoted placement of a business, optionally bounded by a date window."""

    place = models.CharField(max_length=64, blank=True, db_index=True)
    type = models.CharField(max_length=64, blank=True, default='home')
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='featured_slots')
    order = models.IntegerField(default=0)
    active = models.BooleanField(default=True, db_index=True)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['order', '-created_at']
        verbose_name_plural = 'Featured'
        constraints = [
            models.UniqueConstraint(fields=['place', 'type', 'business'], name='featured_unique_slot'),
        ]

    def __str__(self):
        return f'{self.place}/{self.type}: {self.business_id}'

    def save(self, *args, **kwargs):
        self.place = clean(self.place).lower()
        self.type = clean(self.type).lower()
        if self.start_at and self.end_at and self.end_at < self.start_at:
            self.start_at, self.end_at = self.end_at, self.start_at
        super().save(*args, **kwargs)

    @classmethod
    def next_order(cls):
        return (cls.objects.aggregate(m=Max('order'))['m'] or 0) + 1

    @classmethod
    def active_now_q(cls, now=None):
        now = now or timezone.now()
        return (
            Q(active=True)
            & (Q(start_at__isnull=True) | Q(start_at__lte=now))
            & (Q(end_at__isnull=True) | Q(end_at__gte=now))
        )

    def is_active_now(self, now=None):
        now = now or timezone.now()
        if not self.active:
            return False
        if self.start_at and self.start_at > now:
            return False
        if self.end_at and self.end_at < now:
            return False
        return True

    @property
    def legacy_status(self):
        now = timezone.now()
        if not self.active:
            return 'draft'
        if self.start_at and self.start_at > now:
            return 'scheduled'
        if self.end_at and self.end_at < now:
            return 'expired'
        return 'active'

    def to_json(self):
        b = self.business
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'place': self.place,
            'type': self.type,
            'placement': self.type,
            'order': self.order,
            'active': self.active,
            'startAt': iso(self.start_at),
            'endAt': iso(self.end_at),
            'status': self.legacy_status,
            'businessId': str(self.business_id),
            'businessName': b.name,
            'businessSlug': b.slug,
            'title': b.name,
            'subtitle': b.summary or b.address or b.city,
            'imageUrl': (b.gallery or [''])[0],
            'href': f'/isletme/{b.slug}' if b.slug else '',
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# CMS
# ---------------------------------------------------------------------------

class ContentStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PUBLISHED = 'published', 'Published'


class CmsContent(models.Model):
    title = models.CharField(max_length=240)
    slug = models.CharField(max_length=200, unique=True)
    content = models.TextField(blank=True, default='')
    cover_image = models.CharField(max_length=500, blank=True)
    status = models.CharField(max_length=16, choices=ContentStatus.choices, default=ContentStatus.PUBLISHED, db_index=True)
    order = models.IntegerField(default=0)
    seo_title = models.CharField(max_length=240, blank=True)
    seo_description = models.CharField(max_length=500, blank=True)
    date_published = models.DateTimeField(null=True, blank=True)
    date_modified = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    EDITABLE = {
        'title': 'title', 'slug': 'slug', 'content': 'content', 'coverImage': 'cover_image',
        'status': 'status', 'order': 'order', 'seoTitle': 'seo_title', 'seoDescription': 'seo_description',
    }

    class Meta:
        abstract = True
        ordering = ['order', '-created_at']

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        self.title = clean(self.title)
        self.slug = slugify_tr(self.slug or self.title)
        if self.status == ContentStatus.PUBLISHED and not self.date_published:
            self.date_published = self.created_at or timezone.now()
        self.date_modified = timezone.now()
        super().save(*args, **kwargs)

    def to_json(self):
        return {
            '_id': str(self.pk),
            'id': str(self.pk),
            'title': self.title,
            'slug': self.slug,
            'content': self.content,
            'coverImage': self.cover_image,
            'status': self.status,
            'order': self.order,
            'seoTitle': self.seo_title,
            'seoDescription': self.seo_description,
            'datePublished': iso(self.date_published),
            'dateModified': iso(self.date_modified),
            'createdAt': iso(self.created_at),
            'updatedAt': iso(self.updated_at),
        }


class Article(CmsContent):
    excerpt = models.TextField(blank=True, default='')
    place = models.CharField(max_length=64, blank=True)
    tags = models.JSONField(default=list, blank=True)
    pinned = models.BooleanField(default=False)

    EDITABLE = {**CmsContent.EDITABLE, 'excerpt': 'excerpt', 'place': 'place', 'tags': 'tags', 'pinned': 'pinned'}

    class Meta(CmsContent.Meta):
        indexes = [models.Index(fields=['place', 'pinned', 'status', 'order'], name='article_place_pinned_idx')]

    def save(self, *args, **kwargs):
        self.tags = uniq_strings(clean(t).lower() for t in self.tags or [])
        self.place = clean(self.place)
        super().save(*args, **kwargs)

    def to_json(self):
        data = super().to_json()
        data.update(excerpt=self.excerpt, place=self.place, tags=self.tags, pinned=self.pinned)
        return data


class Page(CmsContent):
    """Static pages (kvkk, gizlilik, hakkimizda)."""

    class Meta(CmsContent.Meta):
        pass


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class UserProfile(models.Model):
    """Role and lockout state kept next to Django's user."""

    class Role(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        USER = 'user', 'User'

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.USER, db_index=True)
    is_verified = models.BooleanField(default=False)
    login_attempts = models.PositiveIntegerField(default=0)
    locked_until = models.DateTimeField(null=True, blank=True)
    last_login_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f'{self.user} ({self.role})'

    @classmethod
    def for_user(cls, user):
        profile, _ = cls.objects.get_or_create(
            user=user,
            defaults={'role': cls.Role.ADMIN if user.is_staff else cls.Role.USER},
        )
        return profile

    @property
    def is_locked(self):
        return bool(self.locked_until and self.locked_until > timezone.now())

    def mark_login_failure(self, max_attempts=5, lock_minutes=15):
        if self.is_locked:
            return
        self.login_attempts += 1
        if self.login_attempts >= max_attempts:
            self.locked_until = timezone.now() + timedelta(minutes=lock_minutes)
            self.login_attempts = 0
        self.save(update_fields=['login_attempts', 'locked_until'])

    def mark_login_success(self):
        self.login_attempts = 0
        self.locked_until = None
        self.last_login_at = timezone.now()
        self.save(update_fields=['login_attempts', 'locked_until', 'last_login_at'])


class VerificationCode(models.Model):
    """One-time email codes, stored hashed. A new code replaces older ones for the same email and purpose."""

    class Purpose(models.TextChoices):
        VERIFY_EMAIL = 'verify_email', 'Verify email'
        LOGIN = 'login', 'Login'
        RESET_PASSWORD = 'reset_password', 'Reset password'
        TWO_FACTOR = '2fa', 'Two factor'

    email = models.CharField(max_length=254)
    purpose = models.CharField(max_length=32, choices=Purpose.choices, default=Purpose.VERIFY_EMAIL)
    code_hashed = models.CharField(max_length=128)  # hashed, not plain
    attempts = models.PositiveIntegerField(default=0)
    used_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(db_index=True)
    ip = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    fingerprint = models.CharField(max_length=128, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['email', 'purpose', 'created_at'], name='vc_email_purpose_idx')]

    def __str__(self):
        return f'{self.email} {self.purpose} expires={self.expires_at}'

    def save(self, *args, **kwargs):
        self.email = norm_email(self.email)
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class Review(models.Model):
    """Visitor rating (1..5) with an optional comment, one per fingerprint and business."""

    class Status(models.TextChoices):
        VISIBLE = 'visible', 'Visible'
        PENDING = 'pending', 'Pending'
        HIDDEN = 'hidden', 'Hidden'

    DEFAULT_AUTHOR = 'Misafir'
    COMMENT_MAX = 400
    AUTHOR_MAX = 60

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='reviews')
    rating = models.PositiveSmallIntegerField()
    comment = models.CharField(max_length=COMMENT_MAX, blank=True, default='')
    author = models.CharField(max_length=80, blank=True, default=DEFAULT_AUTHOR)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.VISIBLE, db_index=True)
    source = models.CharField(max_length=32, default='site')
    fingerprint = models.CharField(max_length=128, blank=True)
    ip_hash = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=300, blank=True)
    locale = models.CharField(max_length=16, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [models.Index(fields=['business', 'status', 'created_at'], name='review_biz_status_idx')]
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'fingerprint'], condition=~Q(fingerprint=''),
                name='review_unique_fingerprint',
            ),
        ]

    def __str__(self):
        return f'{self.business_id}: {self.rating}/5 by {self.author}'

    def save(self, *args, **kwargs):
        self.rating = min(5, max(1, int(float(self.rating or 1) + 0.5)))
        self.comment = clean(self.comment)[:self.COMMENT_MAX]
        self.author = clean(self.author)[:self.AUTHOR_MAX] or self.DEFAULT_AUTHOR
        self.fingerprint = clean(self.fingerprint)
        super().save(*args, **kwargs)

    def to_json(self):
        return {
            'author': self.author or self.DEFAULT_AUTHOR,
            'rating': self.rating,
            'text': self.comment or '',
            'date': iso(self.created_at),
        }
