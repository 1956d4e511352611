"""Command line: tradier-triggers poll | run | triggers | cursor | health."""
