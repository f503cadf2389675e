"""Monitor de CT en tiempo real.

Módulos:
- state: estado en memoria por equipo (buffers circulares + cache de BREQ)
- estimator: cálculo del pulso a partir del tail del feed
- publisher: transporte del pulso (Redis stream/canal o HTTP)
- monitor: loop de polling
- cli: entry point
"""
