import pytest
from sqlalchemy.exc import OperationalError

from retailer_desk.core.config import settings
from retailer_desk.core.exceptions import ValidationFailure
from retailer_desk.schemas.retailer import RetailerFilters
from retailer_desk.services.csv_import import RetailerCsvImporter, parse_retailer_csv
from retailer_desk.services.retailers import RetailerDirectory

HEADER = "uid,name,phone,regionId,areaId,distributorId,territoryId,points,routes,notes\n"


def _ids(hierarchy) -> str:
    return f"{hierarchy['region_id']},{hierarchy['area_id']},{hierarchy['distributor_id']},{hierarchy['territory_id']}"


def _csv(hierarchy, *rows: str) -> bytes:
    ids = _ids(hierarchy)
    return (HEADER + "".join(row.replace("{ids}", ids) + "\n" for row in rows)).encode()


def test_parse_reports_row_errors():
    content = (
        HEADER
        + "R1,Shop One,0171,1,1,1,1,5,,\n"
        + "R2,,0172,1,1,1,1,,,\n"
        + "R3,Shop Three,0173,one,1,1,1,,,\n"
        + "R4,Shop Four,0174,1,1,1,1,-3,,\n"
    ).encode("utf-8-sig")

    records, errors = parse_retailer_csv(content)

    assert [r.uid for r in records] == ["R1"]
    assert records[0].points == 5
    assert errors[0] == "Row 3: Missing required fields"
    assert errors[1] == "Row 4: Invalid numeric values"
    assert errors[2].startswith("Row 5: points")


def test_parse_rejects_non_utf8_content():
    with pytest.raises(ValidationFailure):
        parse_retailer_csv(b"\xff\xfe\x00bad")


@pytest.mark.anyio
async def test_import_inserts_valid_rows_and_skips_duplicates(session, cache, hierarchy, make_retailer):
    await make_retailer("EXISTING")
    importer = RetailerCsvImporter(RetailerDirectory(session, cache))

    result = await importer.import_csv(
        _csv(hierarchy, "EXISTING,Dup,0170,{ids},,,", "N1,New One,0171,{ids},3,Route A,", "N2,,0172,{ids},,,")
    )

    assert result == {
        "success": True,
        "imported": 1,
        "failed": 0,
        "errors": ["Row 4: Missing required fields"],
    }
    page = await RetailerDirectory(session, cache).search(RetailerFilters(search="N1"))
    assert page["items"][0]["routes"] == "Route A"


class FlakyDirectory:
    """Fails the second batch it is given."""

    def __init__(self):
        self.calls = 0
        self.rollbacks = 0
        self.session = self

    async def rollback(self):
        self.rollbacks += 1

    async def bulk_create(self, records):
        self.calls += 1
        if self.calls == 2:
            raise OperationalError("INSERT", {}, Exception("Lost connection"))
        return len(records)


@pytest.mark.anyio
async def test_failed_batch_does_not_stop_import(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_BATCH_SIZE", 2)
    directory = FlakyDirectory()
    rows = "".join(f"R{i},Shop {i},017{i},1,1,1,1,,,\n" for i in range(5))

    result = await RetailerCsvImporter(directory).import_csv((HEADER + rows).encode())

    assert result["imported"] == 3
    assert result["failed"] == 2
    assert result["errors"] == ["Batch 2: Lost connection"]
    assert directory.rollbacks == 1


@pytest.mark.anyio
async def test_error_list_is_capped(monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_ERRORS", 3)
    rows = "".join(f"R{i},,0170,1,1,1,1,,,\n" for i in range(10))

    result = await RetailerCsvImporter(FlakyDirectory()).import_csv((HEADER + rows).encode())

    assert result["imported"] == 0
    assert len(result["errors"]) == 3


@pytest.mark.anyio
async def test_unknown_reference_fails_the_batch(session, cache, hierarchy):
    importer = RetailerCsvImporter(RetailerDirectory(session, cache))
    bad_ids = f"999,{hierarchy['area_id']},{hierarchy['distributor_id']},{hierarchy['territory_id']}"
    content = (
        HEADER
        + f"G1,Good Shop,0171,{_ids(hierarchy)},,,\n"
        + f"B1,Bad Shop,0172,{bad_ids},,,\n"
    ).encode()

    result = await importer.import_csv(content)

    assert result["imported"] == 0
    assert result["failed"] == 2
    assert result["errors"] == ["Batch 1: Region with id 999 not found"]
