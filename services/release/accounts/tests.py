"""Tests for role assignments and principal resolution."""
from __future__ import annotations

from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from releases.exceptions import AdminRequired, ConflictDuplicate

from . import services
from .models import RoleAssignment
from .principal import Principal, resolve_principal


class PrincipalTests(TestCase):
    def test_capabilities(self) -> None:
        self.assertTrue(Principal.with_roles("a", ["admin"]).is_admin)
        self.assertTrue(Principal.with_roles("p", ["product_manager"]).can_edit)
        self.assertFalse(Principal.with_roles("p", ["product_manager"]).is_admin)
        self.assertFalse(Principal.with_roles("v", []).can_edit)
        self.assertEqual(Principal("v").author_name, "User")

    def test_resolve_loads_roles(self) -> None:
        services.grant("dev-1", RoleAssignment.DEV)
        principal = resolve_principal("dev-1", "Dana")
        self.assertEqual(principal.roles, frozenset({"dev"}))
        self.assertEqual(principal.author_name, "Dana")


class RoleServiceTests(TestCase):
    def setUp(self) -> None:
        self.admin = Principal.with_roles("admin-1", ["admin"])

    def test_duplicate_role(self) -> None:
        services.assign_role(self.admin, "qa-1", RoleAssignment.QA)
        with self.assertRaises(ConflictDuplicate) as ctx:
            services.assign_role(self.admin, "qa-1", RoleAssignment.QA)
        self.assertEqual(ctx.exception.message, "User already has this role")

    def test_only_admins_assign(self) -> None:
        with self.assertRaises(AdminRequired):
            services.assign_role(Principal.with_roles("dev-1", ["dev"]), "x", RoleAssignment.ADMIN)

    def test_grant_role_command(self) -> None:
        out = StringIO()
        call_command("grant_role", "root", "admin", stdout=out)
        self.assertIn("Granted admin to root", out.getvalue())
        self.assertTrue(RoleAssignment.objects.filter(user_id="root", role="admin").exists())
        with self.assertRaises(CommandError):
            call_command("grant_role", "root", "admin", stdout=StringIO())


class RoleApiTests(TestCase):
    def setUp(self) -> None:
        services.grant("admin-1", RoleAssignment.ADMIN)
        self.admin = APIClient()
        self.admin.credentials(HTTP_X_USER_ID="admin-1", HTTP_X_USER_NAME="Ada")
        self.dev = APIClient()
        self.dev.credentials(HTTP_X_USER_ID="dev-1")

    def test_me(self) -> None:
        response = self.admin.get(reverse("accounts-me"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["roles"], ["admin"])
        self.assertTrue(response.data["is_admin"])

        response = self.dev.get(reverse("accounts-me"))
        self.assertFalse(response.data["can_edit"])

    def test_assign_and_revoke(self) -> None:
        response = self.admin.post(
            reverse("role-list"), {"user_id": "dev-1", "role": "dev"}, format="json"
        )
        self.assertEqual(response.status_code, 201)
        assignment_id = response.data["id"]

        response = self.admin.post(
            reverse("role-list"), {"user_id": "dev-1", "role": "dev"}, format="json"
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["detail"], "User already has this role")

        response = self.dev.get(reverse("role-list"))
        self.assertEqual([item["role"] for item in response.data], ["dev"])

        response = self.dev.delete(reverse("role-detail", args=[assignment_id]))
        self.assertEqual(response.status_code, 403)

        response = self.admin.delete(reverse("role-detail", args=[assignment_id]))
        self.assertEqual(response.status_code, 204)
        response = self.admin.delete(reverse("role-detail", args=[assignment_id]))
        self.assertEqual(response.status_code, 404)
