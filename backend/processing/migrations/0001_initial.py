# Generated manually
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('farmers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProcessingSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_number', models.CharField(db_index=True, max_length=50)),
                ('oil_weight', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('oil_unit', models.CharField(default='kg', max_length=10)),
                ('total_box_weight', models.DecimalField(decimal_places=2, max_digits=10)),
                ('box_count', models.PositiveIntegerField()),
                ('total_price', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('price_per_kg', models.DecimalField(blank=True, decimal_places=3, max_digits=6, null=True)),
                ('amount_paid', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('remaining_amount', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('processing_status', models.CharField(choices=[('pending', 'Pending'), ('processed', 'Processed')], default='pending', max_length=10)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('partial', 'Partial'), ('paid', 'Paid')], default='unpaid', max_length=10)),
                ('processing_date', models.DateTimeField(blank=True, null=True)),
                ('payment_date', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farmer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='farmers.farmer')),
            ],
            options={
                'db_table': 'processing_sessions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['processing_status'], name='sessions_processing_idx'),
                    models.Index(fields=['payment_status'], name='sessions_payment_idx'),
                    models.Index(fields=['-created_at'], name='sessions_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SessionBox',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('box_id', models.CharField(max_length=20)),
                ('box_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('box_type', models.CharField(max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='session_boxes', to='processing.processingsession')),
            ],
            options={
                'db_table': 'session_boxes',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='PaymentTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=3, max_digits=12)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('check', 'Check'), ('transfer', 'Bank transfer')], default='cash', max_length=20)),
                ('notes', models.TextField(blank=True, default='')),
                ('payment_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_transactions', to='processing.processingsession')),
            ],
            options={
                'db_table': 'payment_transactions',
                'ordering': ['-payment_date'],
            },
        ),
    ]
