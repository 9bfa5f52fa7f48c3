"""Background consumers for the message queues."""
