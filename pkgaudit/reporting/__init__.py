"""Terminal, JSON and HTML output of audit results."""
