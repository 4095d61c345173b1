"""Infrastructure: storage adapters and the system clock."""
