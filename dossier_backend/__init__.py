"""
Dossier Backend - Legal Case Document Vault
===========================================

A single-case document vault for a legal team:
1. Permission-gated document upload with SHA-256 integrity proof
2. Bilingual (FR/EN) case timeline
3. Append-only audit trail
4. Dashboard statistics

Roles: admin, lawyer, expert, observer.
"""

__version__ = "1.0.0"
