import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('projects', '0002_timeline_document_uploaded'),
        ('installations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProjectDocument',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('installation_photo', 'Installation Photo'), ('certificate', 'Certificate'), ('warranty', 'Warranty'), ('invoice', 'Invoice'), ('contract', 'Contract')], max_length=30)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('file_name', models.CharField(max_length=255)),
                ('file_url', models.URLField(max_length=500)),
                ('file_size', models.PositiveIntegerField(blank=True, null=True)),
                ('file_mime_type', models.CharField(blank=True, default='', max_length=100)),
                ('uploaded_by_id', models.CharField(max_length=64)),
                ('uploaded_by_role', models.CharField(max_length=30)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='projects.project')),
            ],
            options={
                'db_table': 'project_documents',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['project', 'document_type'], name='project_doc_project_5e1f0a_idx'),
                ],
            },
        ),
    ]
