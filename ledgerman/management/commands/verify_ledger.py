"""
Management command to audit the stock ledger.

Usage:
    python manage.py verify_ledger
    python manage.py verify_ledger --product 42
"""

from django.core.management.base import BaseCommand, CommandError

from ledgerman.services.balances import BalanceQueries


class Command(BaseCommand):
    """Audit ledger consistency command."""

    help = 'Confere a consistência do razão de estoque (saldos e sequências)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product',
            action='append',
            dest='products',
            help='Confere apenas este produto (pode repetir)'
        )

    def handle(self, *args, **options):
        product_ids = options['products'] or BalanceQueries.product_ids()

        failed = 0
        for product_id in product_ids:
            audit = BalanceQueries.verify(product_id)
            if audit.ok:
                if options['verbosity'] > 1:
                    self.stdout.write(
                        f'{product_id}: {audit.entries} lançamento(s), saldo {audit.recorded}'
                    )
                continue

            failed += 1
            self.stderr.write(self.style.ERROR(f'{product_id}:'))
            for problem in audit.problems:
                self.stderr.write(f'  {problem}')

        if failed:
            raise CommandError(f'{failed} produto(s) com inconsistência')

        self.stdout.write(
            self.style.SUCCESS(f'{len(product_ids)} produto(s) conferido(s), razão consistente')
        )
