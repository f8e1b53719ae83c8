"""Parsers des relevés bancaires."""

from compta_banque.parsers.base import BaseParser
from compta_banque.parsers.statement import CsvStatementParser, StatementRowInterpreter

__all__ = ["BaseParser", "CsvStatementParser", "StatementRowInterpreter"]
