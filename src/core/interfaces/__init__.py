"""Contratos (Protocol) entre el Core y los adaptadores.

Por qué:
- El pipeline depende de fuentes de datos, caches y del generador de
  narrativa abstractos; los tests los sustituyen por fakes en memoria.
"""
