"""
Authorization Guard tests.

Verifies:
- PINs are stored hashed, never in clear
- verify_pin answers yes/no and never raises
- Gated flows let PIN-less staff through
"""

import pytest

from pubpos.services import auth_service
from pubpos.services.auth_service import PinValidationError


class TestPinFormat:

    @pytest.mark.parametrize("pin", ["1234", "00000000", "987654"])
    def test_valid(self, pin):
        auth_service.validate_pin_format(pin)

    @pytest.mark.parametrize("pin", ["123", "123456789", "12a4", "", " 1234", None])
    def test_invalid(self, pin):
        with pytest.raises(PinValidationError):
            auth_service.validate_pin_format(pin)

    def test_hash_is_not_the_pin(self):
        hashed = auth_service.hash_pin("4321")
        assert hashed != "4321"
        assert hashed.startswith("$2")


class TestVerifyPin:

    def test_correct_pin(self, manager):
        assert auth_service.verify_pin(manager.id, "1234") is True

    def test_wrong_pin(self, manager):
        assert auth_service.verify_pin(manager.id, "4321") is False

    def test_missing_pin(self, manager):
        assert auth_service.verify_pin(manager.id, None) is False
        assert auth_service.verify_pin(manager.id, "") is False

    def test_staff_without_pin(self, bartender):
        assert auth_service.verify_pin(bartender.id, "1234") is False

    def test_unknown_staff(self, db_session):
        assert auth_service.verify_pin(999, "1234") is False


class TestAuthorize:

    def test_pinless_staff_pass(self, bartender):
        assert auth_service.authorize(bartender, None) is True

    def test_pin_staff_need_pin(self, manager):
        assert auth_service.authorize(manager, None) is False
        assert auth_service.authorize(manager, "0000") is False
        assert auth_service.authorize(manager, "1234") is True
