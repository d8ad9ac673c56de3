"""Pure domain rules, free of database and web concerns."""
