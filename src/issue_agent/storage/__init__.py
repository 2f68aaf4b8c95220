"""SQLite storage for issue sightings, repositories and scan history."""
