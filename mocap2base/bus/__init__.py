"""Message bus endpoints for rigid body batches."""
