from __future__ import annotations

from dataclasses import dataclass
from statistics import fmean, pstdev
from typing import Optional, Sequence

DEFAULT_SIGMA_THRESHOLD = 2.0
MIN_SAMPLES_FOR_FILTER = 3


@dataclass(frozen=True)
class FilterResult:
    average: Optional[float] = None
    valid_count: int = 0
    outliers_removed: int = 0
    std_dev: float = 0.0


def filter_outliers(
    values: Sequence[float],
    sigma_threshold: float = DEFAULT_SIGMA_THRESHOLD,
) -> FilterResult:
    """Promedio con filtro de ±k·σ (media y σ poblacionales).

    - Sin muestras: average=None.
    - Menos de 3 muestras: media simple, sin filtrar, std_dev=0.
    - Si el filtro descarta todo, se devuelve la media sin filtrar con
      valid_count = total de muestras.
    """
    n = len(values)
    if n == 0:
        return FilterResult()

    mean = fmean(values)
    if n < MIN_SAMPLES_FOR_FILTER:
        return FilterResult(average=mean, valid_count=n)

    std_dev = pstdev(values, mu=mean)
    if std_dev == 0:
        # Todas las muestras iguales: nada que descartar
        return FilterResult(average=mean, valid_count=n)

    lower = mean - sigma_threshold * std_dev
    upper = mean + sigma_threshold * std_dev

    # Cotas abiertas: mean ± kσ queda fuera
    valid = [v for v in values if lower < v < upper]
    outliers_removed = n - len(valid)

    if not valid:
        return FilterResult(average=mean, valid_count=n, outliers_removed=outliers_removed, std_dev=std_dev)

    return FilterResult(
        average=fmean(valid),
        valid_count=len(valid),
        outliers_removed=outliers_removed,
        std_dev=std_dev,
    )
