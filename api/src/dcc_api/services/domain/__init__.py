"""
Domain Layer

This package contains business logic organized by domain area.
Domain services implement core algorithms and should not handle
external I/O themselves (handlers read uploads and profile files).

Domains:
- mapping: source XML to DCC-JSON conversion driven by mapping profiles
- dcc_xml: DCC-JSON to DCC XML generation and completeness checks
"""
