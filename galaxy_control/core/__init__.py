"""Core domain types, events and scheduling shared across modules."""
