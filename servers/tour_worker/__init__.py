"""
Tour Schedule Crawler Worker

This worker provides:
- Polite crawling of third-party tour/concert schedule pages
  (per-host rate limiting, robots.txt, per-source cooldown)
- Multi-strategy event extraction (JSON-LD, HTML heuristics, ICS, RSS/Atom, AI)
- Date/time normalization and tour/venue date ranges
- Checksum-based deduplication before persisting

Focus: Japanese live/concert listing pages
"""

__version__ = "1.0.0"
