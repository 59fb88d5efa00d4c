"""Client side of savrsync: storage client, article cache, sync engine and CLI."""
