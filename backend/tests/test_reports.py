"""
Reporting tests: inclusive day boundaries, aggregation, dashboard stats.
"""

from datetime import date, datetime

import pytest

from optica.errors import ValidationError
from optica.models import Appointment, Prescription
from optica.services import reporting_service, sales_service


def _sale_at(db_session, customer, product, quantity, when):
    sale = sales_service.create_sale(customer.id, [{"product_id": product.id, "quantity": quantity}])
    sale.created_at = when
    db_session.commit()
    return sale


def _appointment(db_session, customer, day, appointment_type="Eye Exam", status="Pending"):
    appointment = Appointment(
        customer_id=customer.id,
        appointment_date=day,
        appointment_time="10:30",
        appointment_type=appointment_type,
        status=status,
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


class TestPeriodReport:

    def test_boundaries_are_inclusive_whole_days(self, db_session, customer, frame):
        _sale_at(db_session, customer, frame, 1, datetime(2024, 1, 31, 23, 59, 59, 999999))
        inside_start = _sale_at(db_session, customer, frame, 1, datetime(2024, 2, 1, 0, 0, 0))
        inside_end = _sale_at(db_session, customer, frame, 1, datetime(2024, 2, 29, 23, 59, 59, 999999))
        _sale_at(db_session, customer, frame, 1, datetime(2024, 3, 1, 0, 0, 0))

        report = reporting_service.period_report(start="2024-02-01", end="2024-02-29")

        assert [s["id"] for s in report["sales"]] == [inside_start.id, inside_end.id]
        assert report["total_sales"] == 2
        assert report["start_date"] == "2024-02-01"
        assert report["end_date"] == "2024-02-29"

    def test_single_day_range(self, db_session, customer, frame):
        sale = _sale_at(db_session, customer, frame, 2, datetime(2024, 5, 10, 12, 0, 0))

        report = reporting_service.period_report(start="2024-05-10", end="2024-05-10")

        assert [s["id"] for s in report["sales"]] == [sale.id]

    def test_revenue_units_and_top_products(self, db_session, customer, frame, lens):
        when = datetime(2024, 6, 15, 9, 0, 0)
        _sale_at(db_session, customer, frame, 2, when)
        _sale_at(db_session, customer, frame, 1, when)
        _sale_at(db_session, customer, lens, 4, when)

        report = reporting_service.period_report(start="2024-06-01", end="2024-06-30")

        assert report["total_revenue_cents"] == 3 * 5000 + 4 * 12000
        assert report["total_units_sold"] == 7
        top = report["top_products"]
        assert [p["sku"] for p in top] == ["LN-001", "FR-001"]
        assert top[0]["units_sold"] == 4
        assert top[0]["revenue_cents"] == 48000
        assert top[1]["units_sold"] == 3

    def test_appointments_grouped(self, db_session, customer):
        _appointment(db_session, customer, date(2024, 7, 1), "Eye Exam", "Completed")
        _appointment(db_session, customer, date(2024, 7, 2), "Eye Exam", "Pending")
        _appointment(db_session, customer, date(2024, 7, 3), "Delivery", "Pending")
        _appointment(db_session, customer, date(2024, 8, 1), "Delivery", "Pending")

        report = reporting_service.period_report(start="2024-07-01", end="2024-07-31")

        assert report["total_appointments"] == 3
        assert report["appointments_by_type"] == {"Eye Exam": 2, "Delivery": 1}
        assert report["appointments_by_status"] == {"Completed": 1, "Pending": 2}
        assert report["appointments"][0]["customer"]["name"] == "Ana Souza"

    def test_empty_range(self, db_session):
        report = reporting_service.period_report(start="2030-01-01", end="2030-01-31")

        assert report["sales"] == []
        assert report["total_revenue_cents"] == 0
        assert report["top_products"] == []
        assert report["appointments_by_type"] == {}

    def test_open_ended_range(self, db_session, customer, frame):
        _sale_at(db_session, customer, frame, 1, datetime(2020, 1, 1, 8, 0, 0))
        _sale_at(db_session, customer, frame, 1, datetime(2025, 1, 1, 8, 0, 0))

        assert reporting_service.period_report(start=None, end=None)["total_sales"] == 2
        assert reporting_service.period_report(start="2024-01-01", end=None)["total_sales"] == 1

    @pytest.mark.parametrize("start,end", [
        ("2024-02-30", "2024-03-01"),
        ("yesterday", None),
        ("2024-03-02", "2024-03-01"),
    ])
    def test_invalid_range(self, db_session, start, end):
        with pytest.raises(ValidationError):
            reporting_service.period_report(start=start, end=end)


class TestDashboardStats:

    def test_counts(self, db_session, customer):
        db_session.add(Prescription(customer_id=customer.id, prescription_date=date(2024, 1, 10)))
        db_session.commit()
        _appointment(db_session, customer, date(2024, 1, 11), status="Pending")
        _appointment(db_session, customer, date(2024, 1, 12), status="Confirmed")

        stats = reporting_service.dashboard_stats()

        assert stats == {
            "total_customers": 1,
            "total_prescriptions": 1,
            "pending_appointments": 1,
        }


class TestReportsApi:

    def test_reports_endpoint(self, client, db_session, staff_headers, customer, frame):
        _sale_at(db_session, customer, frame, 1, datetime(2024, 4, 2, 15, 0, 0))

        resp = client.get("/api/reports?startDate=2024-04-01&endDate=2024-04-30", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["total_sales"] == 1

    def test_reports_bad_range(self, client, staff_headers):
        resp = client.get("/api/reports?startDate=2024-04-30&endDate=2024-04-01", headers=staff_headers)
        assert resp.status_code == 400

    def test_stats_endpoint(self, client, staff_headers, customer):
        resp = client.get("/api/stats", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["total_customers"] == 1

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/stats").status_code == 401
