"""
Data Refinery
=============

Department store sales export preprocessing.

Features:
- CSV / Excel upload parsing into a uniform table
- AI column suggestions via an OpenAI-compatible chat API
- Column projection and UTF-8 (BOM) CSV export
- Per-store selection sessions with stale-result protection

"""

__version__ = "1.0.0"
