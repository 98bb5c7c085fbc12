"""
Initial migration for Branchstock models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Branchstock models: InventoryRecord, Movement, Transfer, TransferItem, TransferSequence."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='InventoryRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_id', models.PositiveBigIntegerField(db_index=True, verbose_name='Business')),
                ('product_id', models.PositiveBigIntegerField(verbose_name='Product')),
                ('variant_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Variant')),
                ('location_id', models.PositiveBigIntegerField(verbose_name='Location')),
                ('_quantity', models.IntegerField(db_column='quantity', default=0, verbose_name='Quantity')),
                ('min_stock_level', models.PositiveIntegerField(default=0, verbose_name='Minimum stock level')),
                ('reorder_point', models.PositiveIntegerField(default=0, help_text='Low stock when quantity is at or below this value.', verbose_name='Reorder point')),
                ('last_restocked_at', models.DateTimeField(blank=True, null=True, verbose_name='Last restocked at')),
                ('version', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Inventory record',
                'verbose_name_plural': 'Inventory records',
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('variant_id__isnull', True)), fields=('business_id', 'product_id', 'location_id'), name='unique_record_product_location'),
                    models.UniqueConstraint(condition=models.Q(('variant_id__isnull', False)), fields=('business_id', 'product_id', 'variant_id', 'location_id'), name='unique_record_variant_location'),
                ],
                'indexes': [
                    models.Index(fields=['business_id', 'product_id', 'variant_id'], name='bs_record_item_idx'),
                    models.Index(fields=['business_id', 'location_id'], name='bs_record_location_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_id', models.PositiveBigIntegerField(db_index=True, verbose_name='Business')),
                ('transfer_number', models.CharField(max_length=32, verbose_name='Transfer number')),
                ('from_location_id', models.PositiveBigIntegerField(verbose_name='From location')),
                ('to_location_id', models.PositiveBigIntegerField(verbose_name='To location')),
                ('transfer_type', models.CharField(choices=[('manual', 'Manual'), ('pos_request', 'POS request')], default='manual', max_length=20, verbose_name='Type')),
                ('priority', models.CharField(choices=[('normal', 'Normal'), ('urgent', 'Urgent')], default='normal', max_length=10, verbose_name='Priority')),
                ('origin_sale_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Origin sale')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('in_transit', 'In transit'), ('received', 'Received'), ('partially_received', 'Partially received'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('requested_by', models.CharField(blank=True, default='', max_length=64)),
                ('requested_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Pending requests not approved by then expire automatically', null=True, verbose_name='Expires at')),
                ('approved_by', models.CharField(blank=True, default='', max_length=64)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_by', models.CharField(blank=True, default='', max_length=64)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('shipped_by', models.CharField(blank=True, default='', max_length=64)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('received_by', models.CharField(blank=True, default='', max_length=64)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_by', models.CharField(blank=True, default='', max_length=64)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('expired_at', models.DateTimeField(blank=True, null=True)),
                ('closed_by', models.CharField(blank=True, default='', max_length=64)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('request_notes', models.TextField(blank=True, default='')),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('shipping_notes', models.TextField(blank=True, default='')),
                ('receiving_notes', models.TextField(blank=True, default='')),
                ('closing_notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Transfer',
                'verbose_name_plural': 'Transfers',
                'ordering': ['-requested_at', '-id'],
                'constraints': [
                    models.UniqueConstraint(fields=('business_id', 'transfer_number'), name='unique_transfer_number_per_business'),
                    models.CheckConstraint(condition=models.Q(('from_location_id', models.F('to_location_id')), _negated=True), name='transfer_distinct_locations'),
                ],
                'indexes': [
                    models.Index(fields=['business_id', 'status'], name='bs_transfer_status_idx'),
                    models.Index(fields=['status', 'expires_at'], name='bs_transfer_expiry_idx'),
                    models.Index(fields=['business_id', 'from_location_id', 'status'], name='bs_transfer_outgoing_idx'),
                    models.Index(fields=['business_id', 'to_location_id', 'status'], name='bs_transfer_incoming_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TransferItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('line', models.PositiveSmallIntegerField(default=0)),
                ('product_id', models.PositiveBigIntegerField(verbose_name='Product')),
                ('variant_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Variant')),
                ('quantity_requested', models.PositiveIntegerField(verbose_name='Requested')),
                ('quantity_approved', models.PositiveIntegerField(default=0, verbose_name='Approved')),
                ('quantity_shipped', models.PositiveIntegerField(default=0, verbose_name='Shipped')),
                ('quantity_received', models.PositiveIntegerField(default=0, verbose_name='Received')),
                ('notes', models.CharField(blank=True, default='', max_length=255)),
                ('transfer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='items', to='branchstock.transfer', verbose_name='Transfer')),
            ],
            options={
                'verbose_name': 'Transfer item',
                'verbose_name_plural': 'Transfer items',
                'ordering': ['line', 'id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity_requested__gt', 0)), name='transfer_item_requested_positive'),
                    models.CheckConstraint(condition=models.Q(('quantity_approved__lte', models.F('quantity_requested'))), name='transfer_item_approved_lte_requested'),
                    models.CheckConstraint(condition=models.Q(('quantity_shipped__lte', models.F('quantity_approved'))), name='transfer_item_shipped_lte_approved'),
                    models.CheckConstraint(condition=models.Q(('quantity_received__lte', models.F('quantity_shipped'))), name='transfer_item_received_lte_shipped'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TransferSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('business_id', models.PositiveBigIntegerField(unique=True)),
                ('last_value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Transfer sequence',
                'verbose_name_plural': 'Transfer sequences',
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('entry', 'Entry'), ('exit', 'Exit'), ('adjustment', 'Adjustment'), ('transfer', 'Transfer')], max_length=20, verbose_name='Type')),
                ('quantity_delta', models.IntegerField(help_text='Positive = in, negative = out', verbose_name='Delta')),
                ('quantity_before', models.IntegerField(verbose_name='Quantity before')),
                ('quantity_after', models.IntegerField(verbose_name='Quantity after')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Notes')),
                ('created_by', models.CharField(blank=True, default='', max_length=64, verbose_name='Created by')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Created at')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='branchstock.inventoryrecord', verbose_name='Inventory record')),
                ('related_transfer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='branchstock.transfer', verbose_name='Transfer')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['record', 'created_at'], name='bs_movement_record_idx'),
                ],
            },
        ),
    ]
