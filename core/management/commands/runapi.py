import logging

from daphne.cli import CommandLineInterface
from django.conf import settings
from django.core.management.base import BaseCommand

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Запускает ASGI-приложение API под daphne на порту settings.PORT.'

    def add_arguments(self, parser):
        parser.add_argument('--host', type=str, default='0.0.0.0', help='Адрес для прослушивания.')
        parser.add_argument('--port', type=int, default=None, help='Порт (по умолчанию settings.PORT).')

    def handle(self, *args, **options):
        port = options['port'] or settings.PORT
        logger.info(f"Starting API server on {options['host']}:{port}")
        self.stdout.write(self.style.SUCCESS(f"Server running on port {port}"))
        CommandLineInterface().run([
            '-b', options['host'],
            '-p', str(port),
            settings.ASGI_APPLICATION.replace('.application', ':application'),
        ])
