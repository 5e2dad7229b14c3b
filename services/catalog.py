"""
Read-only service catalogue: category, processing time, fee and default
priority per service type. Consumed when an application is created.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from services.errors import ValidationError


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class ServiceConfig:
    service_type: str
    name: str
    category: str
    processing_days: int
    fee: float
    priority: Priority = Priority.MEDIUM
    required_documents: tuple[str, ...] = field(default_factory=tuple)


def _svc(service_type, name, category, days, fee, priority=Priority.MEDIUM, docs=()):
    return ServiceConfig(service_type, name, category, days, fee, priority, tuple(docs))


SERVICE_CATALOG: dict[str, ServiceConfig] = {
    s.service_type: s
    for s in (
        _svc("birth-certificate", "Birth Certificate", "Civil Registration", 7, 50,
             docs=["Hospital Certificate", "Parent ID Proof", "Address Proof"]),
        _svc("death-certificate", "Death Certificate", "Civil Registration", 5, 50, Priority.HIGH,
             docs=["Death Certificate from Hospital", "ID Proof", "Address Proof"]),
        _svc("marriage-certificate", "Marriage Certificate", "Civil Registration", 10, 100,
             docs=["Marriage Proof", "Age Proof", "Witness Documents"]),
        _svc("income-certificate", "Income Certificate", "Social Welfare", 15, 30,
             docs=["Salary Certificate", "Bank Statements", "ID Proof"]),
        _svc("caste-certificate", "Caste Certificate", "Social Welfare", 30, 30, Priority.LOW,
             docs=["Parent Caste Certificate", "School Records", "Community Verification"]),
        _svc("domicile-certificate", "Domicile Certificate", "Social Welfare", 20, 30,
             docs=["Address Proof", "ID Proof"]),
        _svc("bpl-certificate", "BPL Certificate", "Social Welfare", 30, 0, Priority.HIGH,
             docs=["Income Proof", "Asset Declaration", "Family Details"]),
        _svc("agricultural-subsidy", "Agricultural Subsidy", "Agriculture", 60, 0,
             docs=["Land Records", "Farmer ID", "Bank Details", "Project Report"]),
        _svc("crop-insurance", "Crop Insurance", "Agriculture", 30, 0,
             docs=["Land Records", "Sowing Certificate", "Bank Details"]),
        _svc("trade-license", "Trade License", "Business Services", 30, 500,
             docs=["Shop Establishment Proof", "ID Proof", "Address Proof"]),
        _svc("building-permission", "Building Permission", "Business Services", 45, 2000,
             docs=["Site Plan", "Building Plan", "Land Documents", "NOC"]),
        _svc("school-transfer-certificate", "School Transfer Certificate", "Education", 10, 50,
             docs=["Previous School Records", "ID Proof"]),
        _svc("scholarship", "Scholarship Application", "Education", 60, 0,
             docs=["Mark Sheets", "Income Certificate", "Bank Details"]),
        _svc("health-certificate", "Health Certificate", "Health Services", 5, 50,
             docs=["Medical Examination Report", "ID Proof"]),
        _svc("vaccination-certificate", "Vaccination Certificate", "Health Services", 3, 0,
             docs=["Vaccination Card", "ID Proof"]),
        _svc("water-connection", "Water Connection", "Utilities", 15, 1000,
             docs=["Property Documents", "ID Proof"]),
        _svc("drainage-connection", "Drainage Connection", "Utilities", 20, 1500,
             docs=["Property Documents", "Site Plan"]),
        _svc("street-light-installation", "Street Light Installation", "Utilities", 30, 0),
        _svc("property-tax-assessment", "Property Tax Assessment", "Revenue Services", 15, 0,
             docs=["Property Documents", "Previous Tax Receipt"]),
        _svc("property-tax-payment", "Property Tax Payment", "Revenue Services", 1, 0, Priority.LOW),
        _svc("water-tax-payment", "Water Tax Payment", "Revenue Services", 1, 0, Priority.LOW),
    )
}


def get_service_config(service_type: str) -> ServiceConfig:
    """Look up a service type; unknown types are a validation failure."""
    config = SERVICE_CATALOG.get(service_type)
    if config is None:
        raise ValidationError(f"Unknown service type '{service_type}'", field="service_type")
    return config


def service_display_name(service_type: str) -> str:
    config = SERVICE_CATALOG.get(service_type)
    if config is not None:
        return config.name
    return service_type.replace("-", " ").replace("_", " ").title()
