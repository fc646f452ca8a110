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
            name='Farmer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('nickname', models.CharField(blank=True, max_length=100, null=True)),
                ('phone', models.CharField(blank=True, max_length=20, null=True)),
                ('type', models.CharField(choices=[('small', 'Small'), ('large', 'Large')], default='small', max_length=10)),
                ('price_per_kg', models.DecimalField(blank=True, decimal_places=3, help_text='Optional default; the actual price is chosen per session at payment', max_digits=6, null=True)),
                ('date_added', models.DateTimeField(default=django.utils.timezone.now)),
                ('total_amount_due', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('total_amount_paid', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('paid', 'Paid')], default='pending', max_length=10)),
                ('last_processing_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'farmers',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['name'], name='farmers_name_idx'), models.Index(fields=['payment_status'], name='farmers_payment_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='Box',
            fields=[
                ('id', models.CharField(max_length=20, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('normal', 'Normal'), ('nchira', 'Nchira'), ('chkara', 'Chkara')], default='normal', max_length=10)),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('IN_USE', 'In use')], default='AVAILABLE', max_length=10)),
                ('current_weight', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('is_selected', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('current_farmer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='boxes', to='farmers.farmer')),
            ],
            options={
                'db_table': 'boxes',
                'verbose_name_plural': 'boxes',
                'indexes': [models.Index(fields=['status'], name='boxes_status_idx'), models.Index(fields=['type'], name='boxes_type_idx')],
            },
        ),
    ]
