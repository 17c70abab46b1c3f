from .base_ledger import JobStatusLedger
from .supabase_ledger import SupabaseJobStatusLedger

__all__ = ["JobStatusLedger", "SupabaseJobStatusLedger"]
