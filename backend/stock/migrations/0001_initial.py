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
            name='OilSafe',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('capacity', models.DecimalField(decimal_places=2, max_digits=10)),
                ('current_stock', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('description', models.TextField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'oil_safes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='OlivePurchase',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('purchase_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('farmer_name', models.CharField(max_length=100)),
                ('farmer_phone', models.CharField(blank=True, max_length=20, null=True)),
                ('olive_weight', models.DecimalField(decimal_places=2, max_digits=10)),
                ('price_per_kg', models.DecimalField(decimal_places=3, max_digits=8)),
                ('total_cost', models.DecimalField(decimal_places=3, max_digits=12)),
                ('oil_produced', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('yield_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('is_base_purchase', models.BooleanField(default=False, help_text='Oil bought directly; priced per kg of oil')),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('safe', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='stock.oilsafe')),
            ],
            options={
                'db_table': 'olive_purchases',
                'ordering': ['-purchase_date', '-id'],
                'indexes': [models.Index(fields=['safe', '-purchase_date'], name='purchases_safe_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='OilSale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sale_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('buyer_name', models.CharField(max_length=100)),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=10)),
                ('price_per_kg', models.DecimalField(decimal_places=3, max_digits=8)),
                ('total_revenue', models.DecimalField(decimal_places=3, max_digits=12)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('safe', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='stock.oilsafe')),
            ],
            options={
                'db_table': 'oil_sales',
                'ordering': ['-sale_date', '-id'],
            },
        ),
    ]
