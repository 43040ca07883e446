from .misc import now, now_iso, to_ticks, from_ticks, parse_timestamp, format_elapsed, format_started, ticket_url

__all__ = ["now", "now_iso", "to_ticks", "from_ticks", "parse_timestamp", "format_elapsed", "format_started", "ticket_url"]
