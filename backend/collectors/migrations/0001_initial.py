# Generated manually
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CollectorGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'collector_groups',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DailyCollection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('collection_date', models.DateTimeField()),
                ('location', models.CharField(max_length=255)),
                ('client_name', models.CharField(max_length=255)),
                ('chakra_count', models.PositiveIntegerField(default=0)),
                ('galba_count', models.PositiveIntegerField(default=0)),
                ('nchira_chakra_count', models.PositiveIntegerField(default=0)),
                ('nchira_galba_count', models.PositiveIntegerField(default=0)),
                ('total_chakra', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('price_per_chakra', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=10)),
                ('total_amount', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='collections', to='collectors.collectorgroup')),
            ],
            options={
                'db_table': 'daily_collections',
                'ordering': ['-collection_date', '-id'],
                'indexes': [models.Index(fields=['group', '-collection_date'], name='collections_group_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='CollectorPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=3, max_digits=12)),
                ('notes', models.TextField(blank=True, null=True)),
                ('payment_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='collectors.collectorgroup')),
            ],
            options={
                'db_table': 'collector_payments',
                'ordering': ['-payment_date', '-id'],
            },
        ),
    ]
