"""Domain and database models for notemerge."""
