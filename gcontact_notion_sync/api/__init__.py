"""Google People API and Notion API clients."""
