"""Test package for the KMCC QC forecast backend."""
