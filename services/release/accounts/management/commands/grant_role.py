"""Grant a role to a principal from the command line.

Bootstraps the first administrator, who can then manage roles over the API.
"""
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from accounts import services
from accounts.models import RoleAssignment
from releases.exceptions import ConflictDuplicate


class Command(BaseCommand):
    help = "Grant a release role (admin, dev, qa, product_manager) to a user id."

    def add_arguments(self, parser):
        parser.add_argument("user_id", help="Principal id issued by the identity provider.")
        parser.add_argument(
            "role",
            choices=[value for value, _ in RoleAssignment.ROLE_CHOICES],
        )

    def handle(self, *args, **options):
        try:
            services.grant(options["user_id"], options["role"])
        except ConflictDuplicate as exc:
            raise CommandError(str(exc)) from exc
        self.stdout.write(
            self.style.SUCCESS(f"Granted {options['role']} to {options['user_id']}")
        )
