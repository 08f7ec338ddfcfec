# Record source: CSV ingestion of transfer records.

from treasury_payouts.ingestion.records import TransferRecord, parse_amount, read_records

__all__ = ["TransferRecord", "parse_amount", "read_records"]
