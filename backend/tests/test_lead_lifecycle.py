from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import NOW, FailingNotifier, qualification
from rentlead.domain.errors import (
    DuplicateActiveLead,
    InvalidLeadData,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from rentlead.domain.types import DealInfo, LeadStatus, Priority
from rentlead.integrations import templates
from rentlead.models import Lead, MarketData, Property
from rentlead.service_layer import leads as svc


async def _create(repos, prop, tenant, notifier=None, move_in="2024-01-05", now=NOW):
    return await svc.create_lead(
        repos,
        property_id=prop.id,
        tenant_id=tenant.id,
        qualification=qualification(move_in),
        notifier=notifier,
        now=now,
    )


@pytest.mark.asyncio
async def test_create_lead(repos, seeded_property, owner, tenant, notifier):
    lead = await _create(repos, seeded_property, tenant, notifier)
    await repos.session.commit()

    assert lead.status == LeadStatus.new
    assert lead.priority == Priority.hot
    assert lead.owner_id == owner.id
    assert lead.contact_unlocked is False
    assert lead.owner_responded is False

    assert notifier.types() == [templates.NEW_LEAD]
    sent = notifier.sent[0]
    assert sent["recipient_id"] == owner.id
    assert sent["title"] == "Hot Lead!"
    assert "Ravi Tenant" in sent["body"]
    assert sent["data"] == {"lead_id": lead.id, "property_id": seeded_property.id, "priority": "hot"}


@pytest.mark.asyncio
async def test_duplicate_then_recreate_after_close(repos, seeded_property, owner, tenant):
    first = await _create(repos, seeded_property, tenant)
    await repos.session.commit()

    with pytest.raises(DuplicateActiveLead) as ei:
        await _create(repos, seeded_property, tenant)
    assert ei.value.existing_lead_id == first.id

    await svc.update_lead_status(
        repos,
        lead_id=first.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.closed,
        deal=DealInfo(final_rent=27000.0),
        now=NOW + timedelta(days=2),
    )
    await repos.session.commit()

    second = await _create(repos, seeded_property, tenant, now=NOW + timedelta(days=3))
    await repos.session.commit()
    assert second.id != first.id

    rows = (await repos.session.execute(select(Lead))).scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_expired_lead_frees_the_pair(repos, seeded_property, tenant):
    first = await _create(repos, seeded_property, tenant)
    await svc.expire_lead(repos, lead_id=first.id, now=NOW + timedelta(days=40))
    second = await _create(repos, seeded_property, tenant, now=NOW + timedelta(days=41))
    assert second.status == LeadStatus.new


@pytest.mark.asyncio
async def test_create_validation_and_lookups(repos, seeded_property, owner, tenant):
    with pytest.raises(InvalidLeadData):
        await svc.create_lead(
            repos,
            property_id=seeded_property.id,
            tenant_id=tenant.id,
            qualification=qualification(budget=0),
            now=NOW,
        )
    with pytest.raises(NotFound):
        await svc.create_lead(repos, property_id=999, tenant_id=tenant.id, qualification=qualification(), now=NOW)
    with pytest.raises(NotFound):
        await svc.create_lead(
            repos, property_id=seeded_property.id, tenant_id=999, qualification=qualification(), now=NOW
        )
    with pytest.raises(Unauthorized):
        await svc.create_lead(
            repos, property_id=seeded_property.id, tenant_id=owner.id, qualification=qualification(), now=NOW
        )


@pytest.mark.asyncio
async def test_first_status_change_records_response(repos, seeded_property, owner, tenant, notifier):
    lead = await _create(repos, seeded_property, tenant)

    lead = await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.interested,
        notes="call after 6pm",
        notifier=notifier,
        now=NOW + timedelta(minutes=8),
    )
    assert lead.owner_responded is True
    assert lead.response_time_minutes == 8
    assert lead.owner_notes == "call after 6pm"

    # second touch does not move the response time or the stats
    lead = await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.not_interested,
        now=NOW + timedelta(hours=3),
    )
    assert lead.response_time_minutes == 8
    assert lead.owner_notes == "call after 6pm"

    stats = await repos.owners.load_stats(owner.id)
    assert stats.total_responses == 1
    assert stats.avg_response_time_minutes == 8
    assert stats.fast_response_count == 1
    assert stats.version == 1

    assert notifier.types() == [templates.LEAD_UPDATE]
    assert notifier.sent[0]["recipient_id"] == tenant.id


@pytest.mark.asyncio
async def test_update_checks_run_before_any_write(repos, seeded_property, owner, tenant, other_user):
    lead = await _create(repos, seeded_property, tenant)

    with pytest.raises(NotFound):
        await svc.update_lead_status(repos, lead_id=999, actor_owner_id=owner.id, new_status=LeadStatus.contacted)
    with pytest.raises(Unauthorized):
        await svc.update_lead_status(
            repos, lead_id=lead.id, actor_owner_id=other_user.id, new_status=LeadStatus.contacted
        )
    with pytest.raises(InvalidLeadData):
        await svc.update_lead_status(
            repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.closed, deal=None
        )
    assert lead.owner_responded is False
    assert (await repos.owners.load_stats(owner.id)).total_responses == 0


@pytest.mark.asyncio
async def test_notes_only_update_keeps_a_new_lead_new(repos, seeded_property, owner, tenant, notifier):
    lead = await _create(repos, seeded_property, tenant)

    lead = await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.new,
        notes="asked for salary slip",
        notifier=notifier,
        now=NOW + timedelta(minutes=20),
    )
    assert lead.status == LeadStatus.new
    assert lead.owner_notes == "asked for salary slip"
    assert lead.owner_responded is True
    assert lead.response_time_minutes == 20
    assert notifier.sent == []

    # once contacted, the owner cannot put it back to new
    await svc.update_lead_status(
        repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.contacted, now=NOW
    )
    with pytest.raises(InvalidTransition):
        await svc.update_lead_status(
            repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.new, now=NOW
        )


@pytest.mark.asyncio
async def test_status_cannot_move_backwards_or_leave_terminal(repos, seeded_property, owner, tenant):
    lead = await _create(repos, seeded_property, tenant)
    await svc.update_lead_status(
        repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.interested, now=NOW
    )
    with pytest.raises(InvalidTransition):
        await svc.update_lead_status(
            repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.contacted, now=NOW
        )

    await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.closed,
        deal=DealInfo(final_rent=26000.0, deposit=52000.0),
        now=NOW + timedelta(days=5, hours=1),
    )
    assert lead.days_to_close == 6
    assert lead.final_rent == 26000.0
    assert lead.deposit == 52000.0

    with pytest.raises(InvalidTransition):
        await svc.update_lead_status(
            repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.expired, now=NOW
        )
    with pytest.raises(InvalidTransition):
        await svc.expire_lead(repos, lead_id=lead.id, now=NOW)


@pytest.mark.asyncio
async def test_close_recomputes_market_bucket(repos, seeded_property, owner, tenant):
    lead = await _create(repos, seeded_property, tenant)
    await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.closed,
        deal=DealInfo(final_rent=27000.0),
        now=NOW + timedelta(days=10),
    )
    await repos.session.commit()

    row = (await repos.session.execute(select(MarketData))).scalars().one()
    assert (row.city, row.area, row.unit_type, row.year, row.month) == ("Pune", "Baner", "2BHK", 2024, 1)
    assert row.avg_rent == 27000.0
    assert row.avg_deposit == 0.0
    assert row.avg_days_to_rent == 10.0
    assert row.rented_this_month == 1
    assert row.total_listings == 1
    assert row.active_listings == 1


@pytest.mark.asyncio
async def test_expire_is_idempotent_and_notifies(repos, seeded_property, tenant, notifier):
    lead = await _create(repos, seeded_property, tenant)
    await svc.expire_lead(repos, lead_id=lead.id, notifier=notifier, now=NOW)
    await svc.expire_lead(repos, lead_id=lead.id, notifier=notifier, now=NOW)
    assert lead.status == LeadStatus.expired
    assert notifier.types() == [templates.LEAD_EXPIRED]


@pytest.mark.asyncio
async def test_resubmission_resets_status_and_priority(repos, seeded_property, owner, tenant, other_user):
    lead = await _create(repos, seeded_property, tenant)
    await svc.update_lead_status(
        repos, lead_id=lead.id, actor_owner_id=owner.id, new_status=LeadStatus.contacted, now=NOW
    )

    with pytest.raises(Unauthorized):
        await svc.resubmit_qualification(
            repos, lead_id=lead.id, actor_tenant_id=other_user.id, qualification=qualification(), now=NOW
        )

    lead = await svc.resubmit_qualification(
        repos,
        lead_id=lead.id,
        actor_tenant_id=tenant.id,
        qualification=qualification("2024-03-01", budget=30000.0),
        now=NOW,
    )
    assert lead.status == LeadStatus.new
    assert lead.priority == Priority.casual
    assert lead.budget == 30000.0
    # the response already happened and stays recorded
    assert lead.owner_responded is True


@pytest.mark.asyncio
async def test_check_lead_status(repos, seeded_property, tenant):
    res = await svc.check_lead_status(repos, property_id=seeded_property.id, tenant_id=tenant.id)
    assert res == {"has_lead": False, "lead": None}

    lead = await _create(repos, seeded_property, tenant)
    res = await svc.check_lead_status(repos, property_id=seeded_property.id, tenant_id=tenant.id)
    assert res["has_lead"] is True
    assert res["lead"].id == lead.id

    await svc.expire_lead(repos, lead_id=lead.id, now=NOW)
    res = await svc.check_lead_status(repos, property_id=seeded_property.id, tenant_id=tenant.id)
    assert res["has_lead"] is False


@pytest.mark.asyncio
async def test_owner_dashboard_orders_and_counts(repos, session, seeded_property, owner, tenant, other_user):
    other_prop = Property(owner_id=owner.id, title="Studio", city="Pune", area="Kothrud", unit_type="Studio")
    session.add(other_prop)
    await session.flush()

    casual = await _create(repos, seeded_property, tenant, move_in="2024-04-01")
    hot = await _create(repos, other_prop, tenant, move_in="2024-01-03", now=NOW + timedelta(minutes=1))
    warm = await _create(repos, seeded_property, other_user, move_in="2024-01-20", now=NOW + timedelta(minutes=2))
    await svc.expire_lead(repos, lead_id=casual.id, now=NOW)

    res = await svc.owner_dashboard(repos, owner.id, now=NOW)
    assert [v.lead.id for v in res["leads"]] == [hot.id, warm.id, casual.id]
    assert res["total"] == 3
    assert res["stats"]["total"] == 3
    assert res["stats"]["by_status"]["new"] == 2
    assert res["stats"]["by_status"]["expired"] == 1
    # priority counts cover open leads only
    assert res["stats"]["by_priority"] == {"hot": 1, "warm": 1, "casual": 0}

    page = await svc.list_leads_for_owner(repos, owner.id, limit=1, offset=1, now=NOW)
    assert [v.lead.id for v in page] == [warm.id]

    only_hot = await svc.list_leads_for_owner(repos, owner.id, priority=Priority.hot, now=NOW)
    assert [v.lead.id for v in only_hot] == [hot.id]

    mine = await svc.list_leads_for_tenant(repos, tenant.id)
    assert mine["total"] == 2
    assert [l.id for l in mine["leads"]] == [hot.id, casual.id]


@pytest.mark.asyncio
async def test_priority_goes_stale_until_refreshed(repos, seeded_property, owner, tenant):
    lead = await _create(repos, seeded_property, tenant, move_in="2024-03-01")
    assert lead.priority == Priority.casual

    later = NOW + timedelta(days=55)
    views = await svc.list_leads_for_owner(repos, owner.id, fresh_priority=True, now=later)
    assert views[0].priority == Priority.hot
    # display-only
    assert lead.priority == Priority.casual

    res = await svc.refresh_open_lead_priorities(repos, now=later)
    assert res == {"checked": 1, "changed": 1}
    assert lead.priority == Priority.hot


@pytest.mark.asyncio
async def test_lead_analytics(repos, seeded_property, owner, tenant, other_user):
    a = await _create(repos, seeded_property, tenant)
    await _create(repos, seeded_property, other_user, move_in="2024-03-01")
    await svc.update_lead_status(
        repos,
        lead_id=a.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.closed,
        deal=DealInfo(final_rent=27000.0, deposit=54000.0),
        now=NOW + timedelta(days=4),
    )

    res = await svc.lead_analytics(repos, owner.id)
    assert res["total_leads"] == 2
    assert res["closed_leads"] == 1
    assert res["conversion_rate"] == 50.0
    assert res["avg_rent"] == 27000.0
    assert res["avg_deposit"] == 54000.0
    assert res["avg_days_to_close"] == 4.0
    assert res["priority_distribution"] == {"hot": 1, "warm": 0, "casual": 1}


@pytest.mark.asyncio
async def test_notifier_failure_never_undoes_the_mutation(repos, seeded_property, owner, tenant, caplog):
    failing = FailingNotifier()

    lead = await _create(repos, seeded_property, tenant, notifier=failing)
    lead = await svc.update_lead_status(
        repos,
        lead_id=lead.id,
        actor_owner_id=owner.id,
        new_status=LeadStatus.interested,
        notifier=failing,
        now=NOW + timedelta(minutes=5),
    )
    await repos.session.commit()

    assert failing.calls == 2
    assert lead.status == LeadStatus.interested
    assert "notification failed" in caplog.text
