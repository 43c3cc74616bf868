import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import server.apps.drive.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StorageQuota',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='storage_quota', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('max_bytes', models.BigIntegerField(default=server.apps.drive.models.default_max_bytes, help_text='Storage quota limit in bytes')),
                ('used_bytes', models.BigIntegerField(default=0, help_text='Currently used storage in bytes')),
            ],
            options={
                'verbose_name': 'Storage Quota',
                'verbose_name_plural': 'Storage Quotas',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('max_bytes__gte', 0)), name='drive_max_bytes_non_negative'),
                    models.CheckConstraint(condition=models.Q(('used_bytes__gte', 0)), name='drive_used_bytes_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='folders', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='subfolders', to='drive.folder')),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'parent', 'name'), name='drive_folder_sibling_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', True)), fields=('owner', 'name'), name='drive_folder_root_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StoredFile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stored_name', models.CharField(help_text='Generated filesystem name: {uuid}.{extension}', max_length=300)),
                ('original_name', models.CharField(help_text='User supplied name, display only', max_length=255)),
                ('content_type', models.CharField(blank=True, default='', max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('storage_path', models.CharField(help_text='Absolute path of the stored bytes', max_length=1024)),
                ('checksum_sha256', models.CharField(blank=True, db_index=True, help_text='SHA256 of the bytes as written, null if unavailable', max_length=64, null=True)),
                ('is_public', models.BooleanField(default=False)),
                ('share_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('download_count', models.PositiveBigIntegerField(default=0)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='files', to='drive.folder')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stored_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Stored File',
                'verbose_name_plural': 'Stored Files',
                'ordering': ['-uploaded_at'],
                'indexes': [models.Index(fields=['owner', 'folder'], name='drive_file_owner_folder_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'stored_name'), name='drive_file_stored_name_unique'),
                    models.CheckConstraint(condition=models.Q(models.Q(('is_public', True), ('share_token__isnull', False)), models.Q(('is_public', False), ('share_token__isnull', True)), _connector='OR'), name='drive_file_share_token_public'),
                ],
            },
        ),
    ]
