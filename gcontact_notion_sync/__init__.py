"""
gcontact_notion_sync - One-way sync of Google Contacts into a Notion database.
"""

__version__ = "0.1.0"
