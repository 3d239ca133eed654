from cart.models import CartMergeMarker
from django.core.management.base import BaseCommand
from django.utils import timezone


class Command(BaseCommand):
    help = "Delete cart merge markers whose authenticated session has expired"

    def handle(self, *args, **options):
        now = timezone.now()
        qs = CartMergeMarker.objects.filter(expires_at__lt=now)
        count = qs.count()
        qs.delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} expired cart merge markers."))
