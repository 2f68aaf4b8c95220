"""Issue context extraction, relevance ranking and task brief rendering."""
