# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - utils.py: Lenient HTTP body parsing and header helpers
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import bearer_headers, compact_json, describe_body, parse_response_body

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Utils
    "bearer_headers",
    "compact_json",
    "describe_body",
    "parse_response_body",
]
