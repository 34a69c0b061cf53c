import pytest

from retailer_desk.core.deps import CallerIdentity
from retailer_desk.core.exceptions import NotFoundError, PermissionDeniedError
from retailer_desk.models import UserRole
from retailer_desk.schemas.retailer import RetailerPatch
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.ownership import OwnershipGate
from retailer_desk.services.retailers import RetailerDirectory


def _caller(rep) -> CallerIdentity:
    return CallerIdentity(id=rep.id, username=rep.username, role=rep.role)


@pytest.fixture
def gate(session, cache):
    return OwnershipGate(AssignmentRegistry(session, cache), RetailerDirectory(session, cache))


@pytest.mark.anyio
async def test_rep_cannot_modify_another_reps_retailer(session, cache, gate, make_rep, make_retailer):
    rep_a = await make_rep("a")
    rep_b = await make_rep("b")
    retailer = await make_retailer("R9")
    await AssignmentRegistry(session, cache).bulk_assign(rep_b.id, [retailer.id])

    assert not await gate.can_modify(_caller(rep_a), retailer.id)
    assert await gate.can_modify(_caller(rep_b), retailer.id)
    with pytest.raises(PermissionDeniedError):
        await gate.patch_by_uid(_caller(rep_a), "R9", RetailerPatch(points=5))


@pytest.mark.anyio
async def test_admin_may_modify_any_retailer(gate, make_rep, make_retailer):
    admin = await make_rep("boss", role=UserRole.ADMIN)
    retailer = await make_retailer("R10")

    assert await gate.can_modify(_caller(admin), retailer.id)
    updated = await gate.patch_by_uid(_caller(admin), "R10", RetailerPatch(notes="Closed on Fridays"))
    assert updated["notes"] == "Closed on Fridays"


@pytest.mark.anyio
async def test_patch_changes_only_given_fields(session, cache, gate, make_rep, make_retailer):
    rep = await make_rep("c")
    retailer = await make_retailer("R11", routes="Route 4", points=10)
    await AssignmentRegistry(session, cache).bulk_assign(rep.id, [retailer.id])

    updated = await gate.patch_by_uid(_caller(rep), "R11", RetailerPatch(points=25, routes=None))

    assert updated["points"] == 25
    assert updated["routes"] is None
    assert updated["name"] == "Retailer R11"


@pytest.mark.anyio
async def test_missing_retailer_is_not_found_not_denied(gate, make_rep, hierarchy):
    rep = await make_rep("d")
    with pytest.raises(NotFoundError):
        await gate.resolve_owned(_caller(rep), "does-not-exist")
