"""Planning backend: obstacles, collision checking and path planning."""
