"""Fintax Core - Tax and financial-report calculations for small businesses."""

__version__ = "0.1.0"

from .calculator import Usn6Calculator, Usn15Calculator
from .exceptions import ConfigurationError, FintaxError, ValidationError
from .insurance import EmployeeInsuranceCalculator, IpInsuranceCalculator
from .models import LedgerSnapshot
from .reports import ReportAggregator
from .tax_constants import ConstantTable, TaxConstants, get_tax_constants
from .vat import VatCalculator, extract_vat

__all__ = [
    "Usn6Calculator",
    "Usn15Calculator",
    "VatCalculator",
    "extract_vat",
    "IpInsuranceCalculator",
    "EmployeeInsuranceCalculator",
    "ReportAggregator",
    "LedgerSnapshot",
    "TaxConstants",
    "ConstantTable",
    "get_tax_constants",
    "FintaxError",
    "ValidationError",
    "ConfigurationError",
]
