"""External collaborators: directory discovery and address validation."""
