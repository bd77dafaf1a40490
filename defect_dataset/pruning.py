"""
Removal of quasi-constant feature columns from an assembled dataset.
"""

import math

import pandas as pd

from .config import ID_COLS, ZERO_RATIO_THRESHOLD


def is_zero_or_missing(value) -> bool:
    """Empty, unparsable and numerically zero cells all count as missing"""
    if value is None:
        return True
    text = str(value).strip().replace(',', '.')
    if not text:
        return True
    try:
        number = float(text)
    except ValueError:
        return True
    return number == 0 or math.isnan(number)


def zero_or_missing_ratio(values: pd.Series) -> float:
    if values.empty:
        return 0.0
    return float(values.map(is_zero_or_missing).sum()) / len(values)


def prune_low_variance_columns(
    table: pd.DataFrame,
    threshold: float = ZERO_RATIO_THRESHOLD,
) -> tuple[pd.DataFrame, list[str]]:
    """
    Drop feature columns whose zero/missing ratio reaches `threshold`.

    Only columns strictly between the identifier columns and the trailing label
    column are candidates. The decision is made over the whole table.

    Returns:
        (pruned_table, dropped_columns)
    """
    feature_cols = list(table.columns[len(ID_COLS):-1])

    dropped = []
    for col in feature_cols:
        ratio = zero_or_missing_ratio(table[col])
        if ratio >= threshold:
            print(f"  Dropping low-variance feature column: {col} "
                  f"(zero/missing ratio = {ratio * 100:.2f}%)", flush=True)
            dropped.append(col)

    return table.drop(columns=dropped), dropped
