"""Core gateway building blocks: exceptions, compensation log, scheduling."""
