"""Motor de cálculo de Cycle Time (CT).

Módulos:
- domain: escaneos, clasificador de status, calendario de turnos, snapshots
- calculation: emparejamiento BREQ->BCMP, filtro ±2σ, agregador de ventana
- infrastructure: cliente del feed CSV de equipos, retry, esquema PostgreSQL
- repositories: lectura de raw_scans / equipment_design, upsert de equipment_metrics
"""
