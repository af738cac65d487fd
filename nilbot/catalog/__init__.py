"""Remote catalog paging and list controls."""
