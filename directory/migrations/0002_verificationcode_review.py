# Generated manually for e-doğrula

import django.db.models.deletion
from django.db import migrations, models
from django.utils import timezone


class Migration(migrations.Migration):

    dependencies = [
        ('directory', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='VerificationCode',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.CharField(max_length=254)),
                ('purpose', models.CharField(choices=[('verify_email', 'Verify email'), ('login', 'Login'), ('reset_password', 'Reset password'), ('2fa', 'Two factor')], default='verify_email', max_length=32)),
                ('code_hashed', models.CharField(max_length=128)),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('ip', models.CharField(blank=True, max_length=64)),
                ('user_agent', models.CharField(blank=True, max_length=500)),
                ('fingerprint', models.CharField(blank=True, max_length=128)),
                ('created_at', models.DateTimeField(default=timezone.now)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email', 'purpose', 'created_at'], name='vc_email_purpose_idx')],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField()),
                ('comment', models.CharField(blank=True, default='', max_length=400)),
                ('author', models.CharField(blank=True, default='Misafir', max_length=80)),
                ('status', models.CharField(choices=[('visible', 'Visible'), ('pending', 'Pending'), ('hidden', 'Hidden')], db_index=True, default='visible', max_length=16)),
                ('source', models.CharField(default='site', max_length=32)),
                ('fingerprint', models.CharField(blank=True, max_length=128)),
                ('ip_hash', models.CharField(blank=True, max_length=64)),
                ('user_agent', models.CharField(blank=True, max_length=300)),
                ('locale', models.CharField(blank=True, max_length=16)),
                ('created_at', models.DateTimeField(db_index=True, default=timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='directory.business')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['business', 'status', 'created_at'], name='review_biz_status_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('fingerprint', ''), _negated=True), fields=('business', 'fingerprint'), name='review_unique_fingerprint'),
                ],
            },
        ),
    ]
