"""
Tests for salonbook/services/available_now.py - who can take a walk-in right now.
Business timezone is America/Sao_Paulo (UTC-3); injected clocks are UTC.
"""
import pytest
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

from salonbook.services.available_now import (
    get_professionals_available_now,
    get_services_for_filter,
)
from salonbook.services.schedule_repository import RepositoryError

DAY = date(2026, 3, 16)  # Monday


def _at(hour: int, minute: int = 0) -> datetime:
    """UTC instant for a Sao Paulo wall-clock time on DAY."""
    return datetime(2026, 3, 16, hour + 3, minute, tzinfo=timezone.utc)


class TestScenarios:
    async def test_absent_after_effective_end_of_day(self, db, seed):
        """17:10 is past 18:00 - 60 min buffer, so nobody is free."""
        business = await seed.business(booking_settings={"buffer_minutes": 60})
        await seed.professional(business)

        result = await get_professionals_available_now(db, business.id, now=_at(17, 10))
        assert result == []

    async def test_free_until_buffered_end(self, db, seed):
        """At 16:00 the professional is free for 60 minutes (until 17:00)."""
        business = await seed.business(booking_settings={"buffer_minutes": 60})
        professional = await seed.professional(business)

        result = await get_professionals_available_now(db, business.id, now=_at(16, 0))
        assert len(result) == 1
        assert result[0].professional_id == professional.id
        assert result[0].free_minutes == 60
        assert (result[0].free_until.hour, result[0].free_until.minute) == (17, 0)
        assert result[0].free_from.hour == 16

    async def test_service_filter_without_associations_is_unrestricted(self, db, seed):
        """No professional_services rows at all: filtering by service keeps everyone."""
        business = await seed.business()
        await seed.professional(business, name="Ana")
        await seed.professional(business, name="Bruno")
        service = await seed.service(business)

        result = await get_professionals_available_now(
            db, business.id, service_id=service.id, now=_at(10, 0)
        )
        assert {p.name for p in result} == {"Ana", "Bruno"}


class TestFiltering:
    async def test_busy_professional_excluded(self, db, seed):
        business = await seed.business()
        ana = await seed.professional(business, name="Ana")
        await seed.professional(business, name="Bruno")
        await seed.appointment(business, ana, DAY, "09:30", "10:30")

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert [p.name for p in result] == ["Bruno"]

    async def test_cancelled_appointment_does_not_block(self, db, seed):
        business = await seed.business()
        ana = await seed.professional(business)
        await seed.appointment(business, ana, DAY, "09:30", "10:30", status="cancelled")
        await seed.appointment(business, ana, DAY, "09:30", "10:30", status="no_show")

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert len(result) == 1

    async def test_on_break_excluded(self, db, seed):
        business = await seed.business()
        await seed.professional(business, break_start="12:00", break_end="13:00")

        result = await get_professionals_available_now(db, business.id, now=_at(12, 15))
        assert result == []

    async def test_closed_day_returns_nobody(self, db, seed):
        hours = {"monday": {"open": "09:00", "close": "18:00", "closed": True}}
        business = await seed.business(hours=hours)
        await seed.professional(business)

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []

    async def test_day_off_excluded(self, db, seed):
        """No availability row for Monday means not working."""
        business = await seed.business()
        await seed.professional(business, days=(2, 3, 4))

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []

    async def test_min_duration(self, db, seed):
        business = await seed.business(booking_settings={"buffer_minutes": 0})
        ana = await seed.professional(business)
        await seed.appointment(business, ana, DAY, "10:20", "11:00")

        assert await get_professionals_available_now(
            db, business.id, min_duration=30, now=_at(10, 0)
        ) == []
        result = await get_professionals_available_now(
            db, business.id, min_duration=20, now=_at(10, 0)
        )
        assert result[0].free_minutes == 20

    async def test_business_wide_block(self, db, seed):
        business = await seed.business()
        await seed.professional(business, name="Ana")
        await seed.professional(business, name="Bruno")
        await seed.block(business, DAY, "09:00", "12:00", block_type="maintenance")

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []

    async def test_professional_block(self, db, seed):
        business = await seed.business()
        ana = await seed.professional(business, name="Ana")
        await seed.professional(business, name="Bruno")
        await seed.block(business, DAY, "09:00", "12:00", professional=ana)

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert [p.name for p in result] == ["Bruno"]

    async def test_inactive_professional_excluded(self, db, seed):
        business = await seed.business()
        await seed.professional(business, is_active=False)

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []

    async def test_service_filter_uses_associations(self, db, seed):
        business = await seed.business()
        ana = await seed.professional(business, name="Ana")
        bruno = await seed.professional(business, name="Bruno")
        corte = await seed.service(business, name="Corte", professionals=(ana,))
        await seed.service(business, name="Barba", professionals=(bruno,))

        result = await get_professionals_available_now(
            db, business.id, service_id=corte.id, now=_at(10, 0)
        )
        assert [p.name for p in result] == ["Ana"]

    async def test_only_retired_services_is_not_unrestricted(self, db, seed):
        """Linked only to a retired service: offers nothing, not every service."""
        business = await seed.business()
        ana = await seed.professional(business, name="Ana")
        await seed.service(business, name="Retired", professionals=(ana,), is_active=False)
        corte = await seed.service(business, name="Corte")

        result = await get_professionals_available_now(
            db, business.id, service_id=corte.id, now=_at(10, 0)
        )
        assert result == []

    async def test_only_retired_services_lists_none(self, db, seed):
        business = await seed.business()
        ana = await seed.professional(business, name="Ana")
        await seed.service(business, name="Retired", professionals=(ana,), is_active=False)
        await seed.service(business, name="Corte")

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert len(result) == 1
        assert result[0].services == []

    async def test_unknown_business(self, db, unknown_id):
        assert await get_professionals_available_now(db, unknown_id) == []


class TestRanking:
    async def test_sorted_by_free_minutes_desc(self, db, seed):
        business = await seed.business(booking_settings={"buffer_minutes": 0})
        ana = await seed.professional(business, name="Ana")
        bruno = await seed.professional(business, name="Bruno")
        await seed.professional(business, name="Carla")
        await seed.appointment(business, ana, DAY, "11:00", "12:00")
        await seed.appointment(business, bruno, DAY, "12:00", "13:00")

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert [p.name for p in result] == ["Carla", "Bruno", "Ana"]
        minutes = [p.free_minutes for p in result]
        assert minutes == sorted(minutes, reverse=True)

    async def test_services_capped_at_three(self, db, seed):
        business = await seed.business()
        await seed.professional(business)
        for name in ("Barba", "Corte", "Hidratacao", "Pigmentacao", "Sobrancelha"):
            await seed.service(business, name=name)

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert [s.name for s in result[0].services] == ["Barba", "Corte", "Hidratacao"]

    async def test_filter_matches_service_beyond_display_cap(self, db, seed):
        """The filter checks every offered service, not just the three displayed."""
        business = await seed.business()
        await seed.professional(business)
        services = []
        for name in ("Barba", "Corte", "Hidratacao", "Pigmentacao"):
            services.append(await seed.service(business, name=name))

        result = await get_professionals_available_now(
            db, business.id, service_id=services[-1].id, now=_at(10, 0)
        )
        assert len(result) == 1


class TestFailureIsolation:
    async def test_bad_row_skips_only_that_professional(self, db, seed):
        business = await seed.business()
        await seed.professional(business, name="Ana", start="9h")
        await seed.professional(business, name="Bruno")

        result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert [p.name for p in result] == ["Bruno"]

    async def test_repository_failure_returns_empty(self, db, seed):
        business = await seed.business()
        await seed.professional(business)

        with patch(
            "salonbook.services.schedule_repository.ScheduleRepository.get_occupying_intervals",
            new_callable=AsyncMock,
            side_effect=RepositoryError("connection reset"),
        ):
            result = await get_professionals_available_now(db, business.id, now=_at(10, 0))
        assert result == []

    async def test_malformed_buffer_setting_returns_empty(self, db, seed):
        business = await seed.business(booking_settings={"buffer_minutes": "sixty"})
        await seed.professional(business)

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []

    async def test_negative_buffer_setting_returns_empty(self, db, seed):
        business = await seed.business(booking_settings={"buffer_minutes": -30})
        await seed.professional(business)

        assert await get_professionals_available_now(db, business.id, now=_at(10, 0)) == []


class TestServicesForFilter:
    async def test_lists_active_services_by_name(self, db, seed):
        business = await seed.business()
        await seed.service(business, name="Corte")
        await seed.service(business, name="Barba")
        await seed.service(business, name="Antigo", is_active=False)

        result = await get_services_for_filter(db, business.id)
        assert [s.name for s in result] == ["Barba", "Corte"]
