import pytest

from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.schemas.retailer import RetailerFilters
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.retailers import RetailerDirectory, ScopedRetailerQuery


@pytest.fixture
async def retailers(make_retailer):
    return [await make_retailer(f"R{i:03d}") for i in range(1, 6)]


@pytest.mark.anyio
async def test_bulk_assign_is_idempotent(session, cache, make_rep, retailers):
    rep = await make_rep("rahim")
    registry = AssignmentRegistry(session, cache)
    ids = [r.id for r in retailers[:3]]

    first = await registry.bulk_assign(rep.id, ids)
    second = await registry.bulk_assign(rep.id, ids)

    assert first["assigned"] == 3
    assert first["message"] == "Successfully assigned 3 retailers"
    assert second == {
        "success": True,
        "assigned": 0,
        "message": "All retailers are already assigned to this sales rep",
    }
    assert await registry.count_for(rep.id) == 3


@pytest.mark.anyio
async def test_bulk_assign_counts_only_new_pairs(session, cache, make_rep, retailers):
    rep = await make_rep("karim")
    registry = AssignmentRegistry(session, cache)
    r = [x.id for x in retailers]

    await registry.bulk_assign(rep.id, [r[0], r[1]])
    result = await registry.bulk_assign(rep.id, [r[1], r[2], r[2], r[3]])

    assert result["assigned"] == 2
    assert await registry.count_for(rep.id) == 4
    assert await registry.exists(rep.id, r[3])
    assert not await registry.exists(rep.id, r[4])


@pytest.mark.anyio
async def test_unassign_of_unassigned_retailer_is_a_noop(session, cache, make_rep, retailers):
    rep = await make_rep("nadia")
    registry = AssignmentRegistry(session, cache)
    await registry.bulk_assign(rep.id, [retailers[0].id])

    result = await registry.bulk_unassign(rep.id, [999])

    assert result["assigned"] == 0
    assert result["message"] == "Successfully unassigned 0 retailers"
    assert await registry.count_for(rep.id) == 1


@pytest.mark.anyio
async def test_unassign_removes_only_requested_pairs(session, cache, make_rep, retailers):
    rep = await make_rep("sumi")
    registry = AssignmentRegistry(session, cache)
    ids = [r.id for r in retailers]
    await registry.bulk_assign(rep.id, ids)

    result = await registry.bulk_unassign(rep.id, ids[:2])

    assert result["assigned"] == 2
    assert await registry.count_for(rep.id) == 3
    assert not await registry.exists(rep.id, ids[0])


@pytest.mark.anyio
async def test_unknown_sales_rep_is_rejected(session, cache, retailers):
    registry = AssignmentRegistry(session, cache)
    with pytest.raises(NotFoundError):
        await registry.bulk_assign(4242, [retailers[0].id])
    with pytest.raises(NotFoundError):
        await registry.bulk_unassign(4242, [retailers[0].id])


@pytest.mark.anyio
async def test_unknown_retailer_is_rejected(session, cache, make_rep, retailers):
    rep = await make_rep("tanvir")
    registry = AssignmentRegistry(session, cache)
    with pytest.raises(NotFoundError):
        await registry.bulk_assign(rep.id, [retailers[0].id, 9999])
    assert await registry.count_for(rep.id) == 0


@pytest.mark.anyio
async def test_assignment_changes_refresh_scoped_list(session, cache, make_rep, retailers):
    rep = await make_rep("mitu")
    registry = AssignmentRegistry(session, cache)
    scoped = ScopedRetailerQuery(RetailerDirectory(session, cache))
    filters = RetailerFilters()

    assert (await scoped.list_for_rep(rep.id, filters))["meta"]["total"] == 0

    await registry.bulk_assign(rep.id, [retailers[0].id, retailers[1].id])
    listed = await scoped.list_for_rep(rep.id, filters)
    assert [item["uid"] for item in listed["items"]] == ["R001", "R002"]

    await registry.bulk_unassign(rep.id, [retailers[0].id])
    listed = await scoped.list_for_rep(rep.id, filters)
    assert [item["uid"] for item in listed["items"]] == ["R002"]
