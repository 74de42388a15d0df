"""Tests for the ON CONFLICT helpers on the SQLite store."""

from datetime import date

from sqlalchemy import func, select

from clinic_kernel.db.upsert import insert_or_ignore, insert_or_update
from clinic_kernel.models import Patient, TargetCategory


def patient_values(clinic, **overrides):
    values = {
        "clinic_id": clinic.id,
        "erm_no": "ERM-0001",
        "full_name": "Siti Aminah",
        "first_visit_at": date(2026, 1, 28),
        "last_visit_at": date(2026, 1, 28),
        "visit_count": 1,
    }
    values.update(overrides)
    return values


class TestInsertOrIgnore:
    def test_reports_insert_then_conflict(self, session, clinic):
        assert insert_or_ignore(session, Patient, patient_values(clinic), ("clinic_id", "erm_no"))
        assert not insert_or_ignore(
            session, Patient, patient_values(clinic, full_name="Other"), ("clinic_id", "erm_no"),
        )

        [patient] = session.scalars(select(Patient)).all()
        assert patient.full_name == "Siti Aminah"

    def test_primary_key_generated(self, session):
        insert_or_ignore(session, TargetCategory, {"name": "Karcis Baru"}, ("name",))
        category = session.scalars(select(TargetCategory).where(TargetCategory.name == "Karcis Baru")).one()
        assert category.id is not None


class TestInsertOrUpdate:
    def test_refreshes_only_named_columns(self, session, clinic):
        key = ("clinic_id", "erm_no")
        insert_or_update(session, Patient, patient_values(clinic), key, ("full_name",))
        insert_or_update(
            session,
            Patient,
            patient_values(clinic, full_name="Siti A.", visit_count=9),
            key,
            ("full_name",),
        )

        session.expire_all()
        [patient] = session.scalars(select(Patient)).all()
        assert patient.full_name == "Siti A."
        assert patient.visit_count == 1
        assert session.scalar(select(func.count()).select_from(Patient)) == 1
