"""Tests for the identity flows: register, login, refresh, forgot and reset password."""

import unittest
from datetime import timedelta
from unittest.mock import patch

from app.core.exceptions import (
    ConfigurationError,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    InvalidTokenError,
    UserNotFoundError,
)
from app.core.security import (
    TokenCodec,
    TokenDomain,
    claims_for,
    hash_password,
    utcnow,
    verify_password,
)
from app.services.credential_store import CredentialStore
from app.services.identity import IdentityService
from app.services.permissions import ACCESS_SWAGGER, READ_USER
from app.services.seeding import seed_rbac
from tests.support import STRONG_PASSWORD, RecordingNotifier, make_session, make_settings

NEW_PASSWORD = "Xyz98765&"


class IdentityTestCase(unittest.TestCase):
    seed = True

    def setUp(self) -> None:
        self.session = make_session()
        self.store = CredentialStore(self.session)
        self.settings = make_settings()
        if self.seed:
            seed_rbac(self.store, self.settings)
        self.codec = TokenCodec(self.settings)
        self.notifier = RecordingNotifier()
        self.service = IdentityService(self.store, self.codec, self.notifier, self.settings)

    def tearDown(self) -> None:
        self.session.close()

    def register(self, email: str = "a@x.com"):
        return self.service.register(
            email=email, password=STRONG_PASSWORD, first_name="A", last_name="B"
        )


class TestRegister(IdentityTestCase):
    def test_register_assigns_default_role_and_issues_tokens(self) -> None:
        result = self.register()

        self.assertEqual(result.user.email, "a@x.com")
        self.assertEqual(result.user.first_name, "A")
        self.assertEqual([r.name for r in self.store.roles_of(result.user.id)], ["STAFF"])

        claims = self.codec.verify(result.tokens.access_token, TokenDomain.ACCESS)
        self.assertEqual(claims.subject_id, result.user.id)
        self.assertEqual(claims.roles, ("STAFF",))
        self.assertIn(READ_USER, claims.permissions)
        self.codec.verify(result.tokens.refresh_token, TokenDomain.REFRESH)

    def test_public_user_carries_no_secrets(self) -> None:
        result = self.register()
        self.assertEqual(
            set(result.user.model_dump()), {"id", "email", "first_name", "last_name"}
        )

    def test_password_is_stored_hashed(self) -> None:
        result = self.register()
        stored = self.store.get_user(result.user.id)
        self.assertNotEqual(stored.password_hash, STRONG_PASSWORD)
        self.assertTrue(stored.password_hash.startswith("$2"))

    def test_duplicate_email(self) -> None:
        self.register()
        with self.assertRaises(EmailInUseError):
            self.register()
        self.assertEqual(self.store.count_users(), 1)

    def test_sends_welcome_email(self) -> None:
        self.register()
        self.assertEqual(len(self.notifier.sent), 1)
        to_address, subject, body = self.notifier.sent[0]
        self.assertEqual(to_address, "a@x.com")
        self.assertIn("Welcome", subject)
        self.assertIn("A", body)

    def test_notifier_failure_does_not_fail_registration(self) -> None:
        self.service.notifier = RecordingNotifier(error=RuntimeError("smtp down"))
        result = self.register()
        self.assertIsNotNone(self.store.get_user(result.user.id))

        self.service.notifier = RecordingNotifier(result=False)
        self.register("b@x.com")
        self.assertEqual(self.store.count_users(), 2)


class TestRegisterWithoutDefaultRole(IdentityTestCase):
    seed = False

    def test_missing_default_role_is_configuration_error_without_orphan(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            self.register()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIsNone(self.store.get_user_by_email("a@x.com"))
        self.assertEqual(self.notifier.sent, [])


class TestLogin(IdentityTestCase):
    def test_login_succeeds_with_fresh_grants(self) -> None:
        user_id = self.register().user.id
        developer = self.store.get_role_by_name("DEVELOPER")
        self.store.assign_roles(user_id, [developer.id])

        result = self.service.login(email="a@x.com", password=STRONG_PASSWORD)

        claims = self.codec.verify(result.tokens.access_token, TokenDomain.ACCESS)
        self.assertEqual(claims.roles, ("DEVELOPER",))
        self.assertIn(ACCESS_SWAGGER, claims.permissions)

    def test_wrong_password_and_unknown_email_are_indistinguishable(self) -> None:
        self.register()
        with self.assertRaises(InvalidCredentialsError) as wrong_password:
            self.service.login(email="a@x.com", password="Wrong1234!")
        with self.assertRaises(InvalidCredentialsError) as unknown_email:
            self.service.login(email="nobody@x.com", password=STRONG_PASSWORD)
        self.assertEqual(wrong_password.exception.message, unknown_email.exception.message)
        self.assertEqual(wrong_password.exception.status_code, 401)

    def test_unknown_email_still_checks_a_password_hash(self) -> None:
        with patch(
            "app.services.identity.verify_password", wraps=verify_password
        ) as checker:
            with self.assertRaises(InvalidCredentialsError):
                self.service.login(email="nobody@x.com", password=STRONG_PASSWORD)
        checker.assert_called_once()
        self.assertEqual(checker.call_args.args[0], STRONG_PASSWORD)
        self.assertTrue(checker.call_args.args[1].startswith("$2"))


class TestRefresh(IdentityTestCase):
    def test_refresh_reflects_role_changes(self) -> None:
        result = self.register()
        old_claims = self.codec.verify(result.tokens.access_token, TokenDomain.ACCESS)
        admin = self.store.get_role_by_name("ADMIN")
        self.store.assign_roles(result.user.id, [admin.id])

        pair = self.service.refresh(result.tokens.refresh_token)

        self.assertEqual(old_claims.roles, ("STAFF",))
        self.assertEqual(self.codec.verify(pair.access_token, TokenDomain.ACCESS).roles, ("ADMIN",))
        self.codec.verify(pair.refresh_token, TokenDomain.REFRESH)

    def test_refresh_token_is_not_rotated(self) -> None:
        refresh_token = self.register().tokens.refresh_token
        self.service.refresh(refresh_token)
        self.service.refresh(refresh_token)

    def test_access_token_cannot_refresh(self) -> None:
        result = self.register()
        with self.assertRaises(InvalidTokenError):
            self.service.refresh(result.tokens.access_token)

    def test_deleted_user_cannot_refresh(self) -> None:
        result = self.register()
        self.store.delete_user(result.user.id)
        with self.assertRaises(UserNotFoundError):
            self.service.refresh(result.tokens.refresh_token)


class TestForgotPassword(IdentityTestCase):
    def test_unknown_email_is_silent(self) -> None:
        self.service.forgot_password("nobody@x.com")
        self.assertEqual(self.notifier.sent, [])

    def test_stores_token_and_emails_link(self) -> None:
        user_id = self.register().user.id
        self.notifier.sent.clear()

        before = utcnow()
        self.service.forgot_password("a@x.com")

        user = self.store.get_user(user_id)
        self.assertTrue(user.reset_token)
        self.assertIsNotNone(user.reset_token_expiry)
        claims = self.codec.verify(user.reset_token, TokenDomain.ACCESS)
        self.assertEqual(claims.roles, ())
        self.assertEqual(claims.permissions, ())
        lifetime = timedelta(minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES)
        self.assertLess(claims.expires_at - before, lifetime + timedelta(seconds=2))
        self.assertGreater(claims.expires_at - before, lifetime - timedelta(seconds=2))

        (to_address, subject, body), = self.notifier.sent
        self.assertEqual(to_address, "a@x.com")
        self.assertEqual(subject, "Password Reset")
        self.assertIn(f"http://client.test/reset-password?token={user.reset_token}", body)


class TestResetPassword(IdentityTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.register().user.id
        self.service.forgot_password("a@x.com")
        self.token = self.store.get_user(self.user_id).reset_token

    def test_reset_changes_password_and_clears_token(self) -> None:
        self.service.reset_password(self.token, NEW_PASSWORD)

        user = self.store.get_user(self.user_id)
        self.assertIsNone(user.reset_token)
        self.assertIsNone(user.reset_token_expiry)
        self.service.login(email="a@x.com", password=NEW_PASSWORD)
        with self.assertRaises(InvalidCredentialsError):
            self.service.login(email="a@x.com", password=STRONG_PASSWORD)

    def test_token_is_single_use(self) -> None:
        self.service.reset_password(self.token, NEW_PASSWORD)
        with self.assertRaises(InvalidResetTokenError):
            self.service.reset_password(self.token, "Another1!")

    def test_server_side_expiry_wins_over_token_expiry(self) -> None:
        self.store.update_user(self.user_id, reset_token_expiry=utcnow() - timedelta(seconds=1))
        # The token's own signature and exp still verify.
        self.codec.verify(self.token, TokenDomain.ACCESS)
        with self.assertRaises(InvalidResetTokenError) as ctx:
            self.service.reset_password(self.token, NEW_PASSWORD)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_superseded_token_is_rejected(self) -> None:
        self.service.forgot_password("a@x.com")
        with self.assertRaises(InvalidResetTokenError):
            self.service.reset_password(self.token, NEW_PASSWORD)

    def test_other_valid_access_token_is_rejected(self) -> None:
        token = self.codec.issue(claims_for(self.user_id, "a@x.com"), TokenDomain.ACCESS)
        with self.assertRaises(InvalidResetTokenError):
            self.service.reset_password(token, NEW_PASSWORD)

    def test_refresh_domain_token_is_rejected(self) -> None:
        token = self.codec.issue(claims_for(self.user_id, "a@x.com"), TokenDomain.REFRESH)
        with self.assertRaises(InvalidResetTokenError):
            self.service.reset_password(token, NEW_PASSWORD)

    def test_deleted_user(self) -> None:
        self.store.delete_user(self.user_id)
        with self.assertRaises(UserNotFoundError):
            self.service.reset_password(self.token, NEW_PASSWORD)

    def test_concurrent_reset_with_same_token_succeeds_once(self) -> None:
        consume = self.store.consume_reset_token

        def other_request_wins(user_id, token, password_hash):
            self.assertTrue(consume(user_id, token, hash_password("Other123!", 4)))
            return consume(user_id, token, password_hash)

        with patch.object(self.store, "consume_reset_token", side_effect=other_request_wins):
            with self.assertRaises(InvalidResetTokenError):
                self.service.reset_password(self.token, NEW_PASSWORD)

        self.service.login(email="a@x.com", password="Other123!")
        with self.assertRaises(InvalidCredentialsError):
            self.service.login(email="a@x.com", password=NEW_PASSWORD)


if __name__ == "__main__":
    unittest.main()
