import unittest

from pdv import create_app
from pdv.errors import ValidationError
from pdv.extensions import db
from pdv.models import Owner, StoreSettings, SystemSetting
from pdv.services import settings_service, system_service


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
            "TRIAL_PERIOD_DAYS": 21,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StoreSettings).delete()
        db.session.query(SystemSetting).delete()
        db.session.query(Owner).delete()
        db.session.commit()

        self.owner = Owner(name="Loja", email="loja@example.com", password_hash="x", payment_status="paid")
        db.session.add(self.owner)
        db.session.commit()

    def test_store_settings_defaults_without_row(self):
        settings = settings_service.get_store_settings(db.session, self.owner.id)

        self.assertEqual(settings["tenant_id"], self.owner.id)
        self.assertEqual(settings["primary_color"], "#2563eb")
        self.assertEqual(settings["receipt_message"], "Thank you for your purchase!")
        self.assertIsNone(settings["updated_at"])
        self.assertEqual(db.session.query(StoreSettings).count(), 0)

    def test_first_update_creates_row_with_defaults(self):
        settings = settings_service.update_store_settings(db.session, self.owner.id, {"store_name": "Loja Centro"})

        self.assertEqual(settings["store_name"], "Loja Centro")
        self.assertEqual(settings["secondary_color"], "#1e40af")
        self.assertEqual(settings["receipt_message"], "Thank you for your purchase!")
        self.assertEqual(db.session.query(StoreSettings).count(), 1)

    def test_update_is_partial(self):
        settings_service.update_store_settings(db.session, self.owner.id, {"store_name": "Loja Centro"})
        settings = settings_service.update_store_settings(db.session, self.owner.id, {"phone": "11 99999-0000"})

        self.assertEqual(settings["store_name"], "Loja Centro")
        self.assertEqual(settings["phone"], "11 99999-0000")

    def test_invalid_color_rejected(self):
        with self.assertRaises(ValidationError):
            settings_service.update_store_settings(db.session, self.owner.id, {"primary_color": "blue"})

    def test_unknown_field_rejected(self):
        with self.assertRaises(ValidationError):
            settings_service.update_store_settings(db.session, self.owner.id, {"tenant_id": 99})

    def test_empty_update_rejected(self):
        with self.assertRaises(ValidationError):
            settings_service.update_store_settings(db.session, self.owner.id, {})

    def test_system_settings_defaults(self):
        settings = system_service.get_settings(db.session)

        self.assertEqual(settings, {
            "maintenance_mode": False,
            "system_announcement": None,
            "trial_period_days": 21,
        })
        self.assertFalse(system_service.is_maintenance_mode(db.session))

    def test_system_settings_update(self):
        settings = system_service.update_settings(db.session, {
            "maintenance_mode": "true",
            "trial_period_days": 7,
        })

        self.assertTrue(settings["maintenance_mode"])
        self.assertEqual(settings["trial_period_days"], 7)
        self.assertTrue(system_service.is_maintenance_mode(db.session))

        status = system_service.system_status(db.session)
        self.assertEqual(status["status"], "maintenance")
        self.assertEqual(status["message"], "System under maintenance")

    def test_system_settings_reject_unknown_key(self):
        with self.assertRaises(ValidationError):
            system_service.update_settings(db.session, {"debug": True})

    def test_system_settings_reject_negative_trial(self):
        with self.assertRaises(ValidationError):
            system_service.update_settings(db.session, {"trial_period_days": -1})


if __name__ == "__main__":
    unittest.main()
