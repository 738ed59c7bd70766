from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.core.validators import validate_email
from django.core.exceptions import ValidationError
from rest_framework.authtoken.models import Token


class Command(BaseCommand):
    help = "Create (or reuse) a customer account and print its bearer token."

    def add_arguments(self, parser):
        parser.add_argument("email")
        parser.add_argument(
            "--rotate",
            action="store_true",
            help="Replace an existing token with a new one.",
        )

    def handle(self, *args, **options):
        email = options["email"].strip().lower()
        try:
            validate_email(email)
        except ValidationError:
            raise CommandError(f"'{email}' is not a valid email address.")

        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=email,
            defaults={"email": email},
        )
        if created:
            user.set_unusable_password()
            user.save(update_fields=["password"])
            self.stdout.write(self.style.SUCCESS(f"Created customer '{email}'"))
        else:
            self.stdout.write(f"Customer '{email}' already exists")

        if options["rotate"]:
            Token.objects.filter(user=user).delete()
        token, _ = Token.objects.get_or_create(user=user)
        self.stdout.write(f"  → token={token.key}")
