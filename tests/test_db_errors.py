import pytest
from sqlalchemy.exc import IntegrityError

from retailer_desk.core.db_errors import raise_on_integrity_conflict
from retailer_desk.core.exceptions import ConflictError, NotFoundError


class DummyOrig(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.args = (code, message)


def test_duplicate_key_translates_to_409():
    exc = IntegrityError("stmt", {}, DummyOrig(1062, "Duplicate entry 'R1' for key 'uid'"))
    with pytest.raises(ConflictError) as ctx:
        raise_on_integrity_conflict(exc, "Retailer UID already exists")
    assert ctx.value.status_code == 409
    assert ctx.value.detail == "Retailer UID already exists"


def test_foreign_key_violation_translates_to_404():
    exc = IntegrityError("stmt", {}, DummyOrig(1452, "Cannot add or update a child row"))
    with pytest.raises(NotFoundError):
        raise_on_integrity_conflict(exc, "unused")


def test_foreign_key_violation_on_delete_uses_fk_detail():
    exc = IntegrityError("stmt", {}, DummyOrig(1451, "Cannot delete or update a parent row"))
    with pytest.raises(ConflictError) as ctx:
        raise_on_integrity_conflict(exc, "unused", fk_detail="Region is still referenced by retailers")
    assert ctx.value.detail == "Region is still referenced by retailers"


def test_other_integrity_errors_are_re_raised():
    exc = IntegrityError("stmt", {}, DummyOrig(1048, "Column 'name' cannot be null"))
    with pytest.raises(IntegrityError):
        raise_on_integrity_conflict(exc, "unused")
