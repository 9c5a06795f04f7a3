import pytest

from app.harvester.regions import REGION_NAMES, UNKNOWN_REGION, derive_region


@pytest.mark.parametrize(
    "address, expected",
    [
        ("431 18th Street NW, Washington, DC 20006", "DC"),
        ("123 Main St, City, Nowhere", "Unknown"),
        ("789 Pine Rd, Chicago, IL 60601", "IL"),
        ("1702 E Highland Ave, Phoenix, AZ 85016-1234", "AZ"),
        ("1 Capitol Sq, Richmond, Virginia", "VA"),
        ("1900 Kanawha Blvd, Charleston, West Virginia", "WV"),
        ("Somewhere in the District of Columbia", "DC"),
        ("", UNKNOWN_REGION),
        (None, UNKNOWN_REGION),
    ],
)
def test_derive_region(address, expected) -> None:
    assert derive_region(address) == expected


def test_postal_code_beats_region_name() -> None:
    # "Washington" would map to WA; the code before the ZIP code wins.
    assert derive_region("1250 24th Street, Washington, DC 20037") == "DC"


def test_lowercase_code_is_not_a_match() -> None:
    assert derive_region("12 Elm St, Springfield, il 62701") == UNKNOWN_REGION


def test_region_table_has_states_and_federal_district() -> None:
    assert len(REGION_NAMES) == 51
    assert len(set(REGION_NAMES.values())) == 51
    assert REGION_NAMES["District of Columbia"] == "DC"
