# Generated manually for e-doğrula

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models
from django.utils import timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Business',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=180)),
                ('type', models.CharField(default='Bilinmiyor', max_length=120)),
                ('slug', models.CharField(blank=True, db_index=True, max_length=200)),
                ('handle', models.CharField(blank=True, db_index=True, max_length=80)),
                ('instagram_username', models.CharField(blank=True, max_length=80)),
                ('instagram_url', models.CharField(blank=True, max_length=300)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('phones', models.JSONField(blank=True, default=list)),
                ('email', models.CharField(blank=True, max_length=254)),
                ('website', models.CharField(blank=True, max_length=300)),
                ('booking_url', models.CharField(blank=True, max_length=300)),
                ('address', models.CharField(blank=True, max_length=300)),
                ('city', models.CharField(blank=True, max_length=64)),
                ('district', models.CharField(blank=True, max_length=64)),
                ('location', models.JSONField(blank=True, default=dict)),
                ('description', models.TextField(blank=True, default='')),
                ('summary', models.TextField(blank=True, default='')),
                ('features', models.JSONField(blank=True, default=list)),
                ('gallery', models.JSONField(blank=True, default=list)),
                ('licence_no', models.CharField(blank=True, max_length=80)),
                ('rating', models.FloatField(default=0)),
                ('reviews_count', models.PositiveIntegerField(default=0)),
                ('google_place_id', models.CharField(blank=True, max_length=200)),
                ('google_rating', models.FloatField(default=0)),
                ('google_reviews_count', models.PositiveIntegerField(default=0)),
                ('google', models.JSONField(blank=True, default=dict)),
                ('verified', models.BooleanField(db_index=True, default=False)),
                ('featured', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('approved', 'Approved'), ('pending', 'Pending'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=16)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name_plural': 'Businesses',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('slug', ''), _negated=True), fields=('slug',), name='business_unique_slug'),
                    models.UniqueConstraint(condition=models.Q(('handle', ''), _negated=True), fields=('handle',), name='business_unique_handle'),
                    models.UniqueConstraint(condition=models.Q(('instagram_username', ''), _negated=True), fields=('instagram_username',), name='business_unique_instagram'),
                    models.UniqueConstraint(condition=models.Q(('phone', ''), _negated=True), fields=('phone',), name='business_unique_phone'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Report',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=240)),
                ('instagram_username', models.CharField(blank=True, max_length=80)),
                ('instagram_url', models.CharField(blank=True, max_length=300)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('desc', models.TextField(blank=True, max_length=8000)),
                ('reporter_email', models.CharField(blank=True, max_length=160)),
                ('reporter_name', models.CharField(blank=True, max_length=160)),
                ('reporter_phone', models.CharField(blank=True, max_length=32)),
                ('verified_email', models.CharField(blank=True, max_length=160)),
                ('consent', models.BooleanField(default=False)),
                ('policy_version', models.CharField(default='v1', max_length=16)),
                ('created_by_ip', models.CharField(blank=True, max_length=64)),
                ('user_agent', models.CharField(blank=True, max_length=500)),
                ('evidence_files', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('open', 'Open'), ('reviewing', 'Reviewing'), ('closed', 'Closed')], db_index=True, default='open', max_length=16)),
                ('support_count', models.PositiveIntegerField(default=0)),
                ('supporters', models.JSONField(blank=True, default=list)),
                ('last_supported_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reporter', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reports', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Blacklist',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=240)),
                ('business_name', models.CharField(blank=True, max_length=240)),
                ('business_slug', models.CharField(blank=True, db_index=True, max_length=200)),
                ('instagram_username', models.CharField(blank=True, db_index=True, max_length=80)),
                ('instagram_url', models.CharField(blank=True, max_length=300)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('phone_digits', models.CharField(blank=True, db_index=True, max_length=32)),
                ('desc', models.TextField(blank=True, default='')),
                ('reason', models.TextField(blank=True, default='')),
                ('notes', models.TextField(blank=True, default='')),
                ('severity', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')], db_index=True, default='medium', max_length=16)),
                ('status', models.CharField(choices=[('active', 'Active'), ('open', 'Open'), ('removed', 'Removed')], db_index=True, default='active', max_length=16)),
                ('evidence_urls', models.JSONField(blank=True, default=list)),
                ('fingerprints', models.JSONField(blank=True, default=list)),
                ('source', models.CharField(default='admin', max_length=32)),
                ('created_by_ip', models.CharField(blank=True, max_length=64)),
                ('user_agent', models.CharField(blank=True, max_length=500)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='blacklist_entries', to='directory.business')),
                ('reports', models.ManyToManyField(blank=True, related_name='blacklist_entries', to='directory.report')),
            ],
            options={
                'verbose_name_plural': 'Blacklist',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='BlacklistSupport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=160)),
                ('contact', models.CharField(blank=True, max_length=160)),
                ('comment', models.TextField(blank=True, max_length=4000)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('spam', 'Spam')], default='pending', max_length=16)),
                ('created_by_ip', models.CharField(blank=True, max_length=64)),
                ('created_at', models.DateTimeField(default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('blacklist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='supports', to='directory.blacklist')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Featured',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('place', models.CharField(blank=True, db_index=True, max_length=64)),
                ('type', models.CharField(blank=True, default='home', max_length=64)),
                ('order', models.IntegerField(default=0)),
                ('active', models.BooleanField(db_index=True, default=True)),
                ('start_at', models.DateTimeField(blank=True, null=True)),
                ('end_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='featured_slots', to='directory.business')),
            ],
            options={
                'verbose_name_plural': 'Featured',
                'ordering': ['order', '-created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('place', 'type', 'business'), name='featured_unique_slot'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Article',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=240)),
                ('slug', models.CharField(max_length=200, unique=True)),
                ('content', models.TextField(blank=True, default='')),
                ('cover_image', models.CharField(blank=True, max_length=500)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('published', 'Published')], db_index=True, default='published', max_length=16)),
                ('order', models.IntegerField(default=0)),
                ('seo_title', models.CharField(blank=True, max_length=240)),
                ('seo_description', models.CharField(blank=True, max_length=500)),
                ('date_published', models.DateTimeField(blank=True, null=True)),
                ('date_modified', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('excerpt', models.TextField(blank=True, default='')),
                ('place', models.CharField(blank=True, max_length=64)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('pinned', models.BooleanField(default=False)),
            ],
            options={
                'ordering': ['order', '-created_at'],
                'abstract': False,
                'indexes': [models.Index(fields=['place', 'pinned', 'status', 'order'], name='article_place_pinned_idx')],
            },
        ),
        migrations.CreateModel(
            name='Page',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=240)),
                ('slug', models.CharField(max_length=200, unique=True)),
                ('content', models.TextField(blank=True, default='')),
                ('cover_image', models.CharField(blank=True, max_length=500)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('published', 'Published')], db_index=True, default='published', max_length=16)),
                ('order', models.IntegerField(default=0)),
                ('seo_title', models.CharField(blank=True, max_length=240)),
                ('seo_description', models.CharField(blank=True, max_length=500)),
                ('date_published', models.DateTimeField(blank=True, null=True)),
                ('date_modified', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['order', '-created_at'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('user', 'User')], db_index=True, default='user', max_length=16)),
                ('is_verified', models.BooleanField(default=False)),
                ('login_attempts', models.PositiveIntegerField(default=0)),
                ('locked_until', models.DateTimeField(blank=True, null=True)),
                ('last_login_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='VerificationRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=255)),
                ('trade_title', models.CharField(blank=True, max_length=255)),
                ('type', models.CharField(blank=True, max_length=120)),
                ('instagram_username', models.CharField(blank=True, db_index=True, max_length=80)),
                ('instagram_url', models.CharField(blank=True, max_length=300)),
                ('phone', models.CharField(blank=True, db_index=True, max_length=32)),
                ('landline', models.CharField(blank=True, max_length=32)),
                ('city', models.CharField(blank=True, db_index=True, max_length=64)),
                ('district', models.CharField(blank=True, db_index=True, max_length=64)),
                ('address', models.CharField(blank=True, max_length=256)),
                ('email', models.CharField(blank=True, db_index=True, max_length=254)),
                ('website', models.CharField(blank=True, max_length=300)),
                ('note', models.TextField(blank=True, default='')),
                ('documents', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_review', 'In review'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('archived', 'Archived'), ('spam', 'Spam')], db_index=True, default='pending', max_length=16)),
                ('reject_reason', models.TextField(blank=True, default='')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('business_name', models.CharField(blank=True, max_length=255)),
                ('legal_name', models.CharField(blank=True, max_length=255)),
                ('phone_mobile', models.CharField(blank=True, max_length=32)),
                ('phone_fixed', models.CharField(blank=True, max_length=32)),
                ('instagram', models.CharField(blank=True, max_length=300)),
                ('docs', models.JSONField(blank=True, default=list)),
                ('images', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verification_requests', to='directory.business')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Verification request',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email', 'status', 'created_at'], name='vr_email_status_idx'),
                    models.Index(fields=['city', 'district', 'created_at'], name='vr_city_district_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApplyRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_name', models.CharField(max_length=255)),
                ('legal_name', models.CharField(blank=True, max_length=255)),
                ('type', models.CharField(blank=True, max_length=120)),
                ('address', models.CharField(blank=True, max_length=256)),
                ('city', models.CharField(blank=True, max_length=64)),
                ('district', models.CharField(blank=True, max_length=64)),
                ('phone_mobile', models.CharField(blank=True, max_length=32)),
                ('phone_fixed', models.CharField(blank=True, max_length=32)),
                ('instagram', models.CharField(blank=True, max_length=300)),
                ('website', models.CharField(blank=True, max_length=300)),
                ('email', models.CharField(blank=True, max_length=254)),
                ('note', models.TextField(blank=True, default='')),
                ('docs', models.JSONField(blank=True, default=list)),
                ('images', models.JSONField(blank=True, default=list)),
                ('doc_count', models.PositiveIntegerField(default=0)),
                ('image_count', models.PositiveIntegerField(default=0)),
                ('folder', models.CharField(blank=True, max_length=64)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_review', 'In review'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('archived', 'Archived')], db_index=True, default='pending', max_length=16)),
                ('terms_accepted', models.BooleanField(default=False)),
                ('reviewer_note', models.TextField(blank=True, default='')),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='legacy_applications', to='directory.business')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Legacy application',
                'ordering': ['-created_at'],
            },
        ),
    ]
