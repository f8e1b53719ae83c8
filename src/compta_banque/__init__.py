"""compta-banque : import et rapprochement de relevés bancaires."""

__version__ = "0.1.0"
