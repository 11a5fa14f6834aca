"""HTTP surface for TaskHub Core."""
