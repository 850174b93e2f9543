"""Travel CRM backend - multi-tenant agency CRM"""

__version__ = "1.0.0"
