"""Test data factories for building test objects."""
from uuid import UUID, uuid4
from bill_ingestion.models.internal import DocumentText, TextFragment
from bill_ingestion.models.items import ExtractedItem, Vendor
from bill_ingestion.resolution.index import BuildingRef, MeterRef
from bill_ingestion.storage.models import Building, Meter

EVERGY_TEXT = """\
--- PAGE 1 ---
Evergy
Account number 1234567890
Service location: 3012 N. Tripple Creek Drive
Billing period: 01/05/25 - 02/04/25
Total to be drafted on 02/20/25 $1,234.56
--- PAGE 2 ---
CURRENT CHARGES
Meter 12345678 Rate code: WSSES
Billing period 01/05/25 - 02/04/25
Energy use kWh 15,200
Charges
Demand $312.40
Energy charge $901.16
RATE CODES
WSSES Small general service
"""

KGS_TEXT = """\
--- PAGE 1 ---
Kansas Gas Service
A Division of ONE Gas
Per MCF
1200 W Main St
ABC1234567 01-05-25 02-04-25
--- PAGE 2 ---
Per MCF
1200 W Main St
Meter ABC1234567
Current Charges $245.67
CONSTANT
1520 1562 42000 1.000
Total Current Charges $245.67
"""

# Two meters; page 2 repeats each meter's anchor row inside its charge box.
KGS_TWO_METER_TEXT = """\
--- PAGE 1 ---
Kansas Gas Service
A Division of ONE Gas
Per MCF
1200 W Main St
ABC1234567 01-05-25 02-04-25
Per MCF
2400 E Oak Ave
XYZ7654321 01-05-25 02-04-25
--- PAGE 2 ---
Per MCF
1200 W Main St
ABC1234567 01-05-25 02-04-25
Current Charges $245.67
CONSTANT
1520 1562 42000 1.000
Per MCF
2400 E Oak Ave
XYZ7654321 01-05-25 02-04-25
Current Charges $88.10
CONSTANT
800 812 12000 1.000
Total Current Charges $333.77
"""


WOODRIVER_TEXT = """\
--- PAGE 1 ---
WoodRiver Energy, LLC
Production Month: January 2025
Service Address: 3012 N Tripple Creek Dr Acct/Meter: 4471/KS00123
Fixed (FOM) 1,250.5 $3.25 $4,064.13
Sub-Total: $4,064.13
Service Address: 500 E 3rd St Acct/Meter: 4471/KS00456
Fixed (FOM) 300 $3.25 $975.00
Sub-Total: $975.00
"""


def make_doc(text: str, source_file: str = "bill.pdf") -> DocumentText:
    return DocumentText.from_text(text, source_file=source_file)


def make_item(**overrides) -> ExtractedItem:
    fields = dict(
        vendor=Vendor.KGS,
        source_file="bill.pdf",
        service_address="1200 W MAIN ST",
        meter_no="ABC1234567",
        period_start="01-05-25",
        period_end="02-04-25",
        usage_mcf=42.0,
        section_total_cost=245.67,
    )
    fields.update(overrides)
    return ExtractedItem(**fields)


def make_building(org_id: UUID, address: str = "1200 W Main St", **overrides) -> Building:
    fields = dict(
        id=uuid4(),
        org_id=org_id,
        name="Central Office",
        address=address,
        city="Wichita",
        state="KS",
        postal_code="67203",
    )
    fields.update(overrides)
    return Building(**fields)


def make_meter(building_id: UUID, utility: str = "gas", label: str | None = "ABC1234567", **overrides) -> Meter:
    return Meter(id=uuid4(), building_id=building_id, utility=utility, label=label, **overrides)


def make_building_ref(address: str | None, name: str | None = None, **overrides) -> BuildingRef:
    return BuildingRef(id=overrides.pop("id", uuid4()), name=name, address=address, **overrides)


def make_meter_ref(building_id: UUID, label: str, utility: str = "gas") -> MeterRef:
    return MeterRef(id=uuid4(), building_id=building_id, utility=utility, label=label)


def fragments_for(text: str) -> list[list[TextFragment]]:
    """Positioned fragments that reconstruct to *text*, one per line."""
    return [
        [TextFragment(x=36.0, y=12.0 * (i + 1), text=line) for i, line in enumerate(page.lines)]
        for page in make_doc(text).pages
    ]
