"""Dominio de TXSENSE: modelos, errores y catálogos de Sui.

Por qué:
- Estructuras puras (Pydantic v2) que comparten servicios, adaptadores y CLI.
- Sin HTTP ni SDKs: coin types, digests y narrativas como conceptos.
"""
