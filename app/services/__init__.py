"""Report lifecycle, authorization gate, store and workflow services."""
