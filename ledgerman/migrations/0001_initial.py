"""
Initial migration for Ledgerman models.
"""

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create the StockEntry ledger."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='ID do Produto')),
                ('sequence', models.PositiveIntegerField(help_text='Posição do lançamento no razão do produto (começa em 1)', verbose_name='Sequência')),
                ('change', models.IntegerField(help_text='Positivo = entrada, Negativo = saída', verbose_name='Variação')),
                ('type', models.CharField(choices=[('IN', 'Entrada'), ('OUT', 'Saída')], editable=False, max_length=3, verbose_name='Tipo')),
                ('quantity', models.PositiveIntegerField(editable=False, verbose_name='Quantidade')),
                ('balance_after', models.IntegerField(verbose_name='Saldo após')),
                ('source_type', models.CharField(choices=[('MANUAL_ADJUSTMENT', 'Ajuste manual'), ('MO_CONSUMPTION', 'Consumo de OP'), ('MO_PRODUCTION', 'Produção de OP'), ('INITIAL_STOCK', 'Estoque inicial'), ('IMPORT', 'Importação')], max_length=32, verbose_name='Origem')),
                ('source_id', models.CharField(blank=True, default='', max_length=64, verbose_name='ID da Origem')),
                ('note', models.CharField(blank=True, default='', max_length=255, verbose_name='Observação')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
            ],
            options={
                'verbose_name': 'Lançamento de Estoque',
                'verbose_name_plural': 'Lançamentos de Estoque',
                'ordering': ['product_id', 'sequence'],
                'indexes': [
                    models.Index(fields=['product_id', '-sequence'], name='ledgerman_entry_head_idx'),
                    models.Index(fields=['source_type', 'source_id'], name='ledgerman_entry_source_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product_id', 'sequence'), name='unique_stock_entry_sequence'),
                    models.CheckConstraint(condition=models.Q(('balance_after__gte', 0)), name='stock_entry_balance_non_negative'),
                ],
            },
        ),
    ]
