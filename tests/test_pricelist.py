from decimal import Decimal
import io

import pytest

from workshop.errors import ValidationError
from workshop.models import PriceListEntry
from workshop.pricelist import (
    export_price_list,
    price_list_key,
    price_list_template,
    read_price_list,
)

EMAIL = "ali@lab.com"


def test_template_can_be_imported():
    entries = read_price_list(io.BytesIO(price_list_template()), filename="template.xlsx")
    assert [(e.type, e.price) for e in entries] == [
        ("Standard Treatment", Decimal("5000")),
        ("Premium Treatment", Decimal("7500")),
    ]
    assert entries[1].notes == "Includes premium service"


def test_export_reads_back():
    entries = [PriceListEntry("Zirconia crown", "2500.50", "per unit")]
    imported = read_price_list(io.BytesIO(export_price_list(entries)), filename="export.xlsx")
    assert [(e.type, e.price, e.notes) for e in imported] == [("Zirconia crown", Decimal("2500.5"), "per unit")]


def test_csv_with_legacy_headers_skips_bad_rows():
    text = (
        "YAPILACAK İŞİN CİNSİ (TEK ÇENE),FİYAT,FİYATA EKLENECEK BİLGİLER\n"
        "Metal destekli kron,1500,\n"
        ",900,no type\n"
        "Free check,0,\n"
        "Broken price,abc,\n"
        "İmplant üstü kron,3200.75,vida dahil\n"
    )
    entries = read_price_list(io.BytesIO(text.encode("utf-8")), filename="fiyat.csv")
    assert [(e.type, e.price, e.notes) for e in entries] == [
        ("Metal destekli kron", Decimal("1500"), ""),
        ("İmplant üstü kron", Decimal("3200.75"), "vida dahil"),
    ]


def test_missing_columns():
    with pytest.raises(ValidationError):
        read_price_list(io.BytesIO(b"name,cost\nCrown,100\n"), filename="list.csv")


def test_no_valid_rows():
    with pytest.raises(ValidationError):
        read_price_list(io.BytesIO(b"PRICE,JOB TYPE (SINGLE JAW)\n0,Crown\n"), filename="list.csv")


def test_unreadable_file():
    with pytest.raises(ValidationError):
        read_price_list(io.BytesIO(b"not a spreadsheet"), filename="list.xlsx")


def test_replace_get_and_search(service):
    service.price_lists.replace(EMAIL, [
        PriceListEntry("Zirconia crown", "2500"),
        PriceListEntry("Night guard", "800", "soft"),
    ])
    assert [e.type for e in service.price_lists.get(EMAIL)] == ["Zirconia crown", "Night guard"]
    assert [e.type for e in service.price_lists.search(EMAIL, "CROWN")] == ["Zirconia crown"]
    assert len(service.price_lists.search(EMAIL, "")) == 2

    service.price_lists.replace(EMAIL, [PriceListEntry("Bridge", "4000")])
    assert [e.type for e in service.price_lists.get(EMAIL)] == ["Bridge"]


def test_replace_rejects_invalid_entries(service):
    with pytest.raises(ValidationError):
        service.price_lists.replace(EMAIL, [PriceListEntry("", "10")])
    with pytest.raises(ValidationError):
        service.price_lists.replace(EMAIL, [PriceListEntry("Crown", "-1")])
    assert price_list_key(EMAIL) not in service.store


def test_clear(service):
    service.price_lists.replace(EMAIL, [PriceListEntry("Bridge", "4000")])
    service.price_lists.clear(EMAIL)
    assert service.price_lists.get(EMAIL) == []
