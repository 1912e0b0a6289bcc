"""mob-crm — personal CRM store with contact merge and duplicate detection."""

__version__ = "0.1.0"
