"""
Named Matrix implementation for surveystats.

This module provides a numeric table with named rows (cases) and columns
(variables), built from raw survey rows. It is the single place where raw
cells are parsed and where listwise deletion happens.
"""

import logging
import numpy as np
import pandas as pd
from typing import Any, List, Mapping, Optional, Sequence, Union

from surveystats.errors import ValidationError
from surveystats.utils.general import to_float

logger = logging.getLogger(__name__)


class NamedMatrix:
    """
    A cases x variables matrix with named rows and columns.

    Uses a pandas DataFrame as the underlying storage. Missing or
    non-numeric cells are stored as NaN. Row names are the positions of the
    cases in the source table, so a subset keeps track of which cases were
    dropped.
    """

    def __init__(self,
                 matrix: Optional[Union[np.ndarray, pd.DataFrame]] = None,
                 rownames: Optional[List[Any]] = None,
                 colnames: Optional[List[Any]] = None,
                 n_total: Optional[int] = None):
        """
        Initialize a NamedMatrix.

        Args:
            matrix: Matrix data (numpy array or pandas DataFrame)
            rownames: List of row names
            colnames: List of column names
            n_total: Number of cases in the source table (defaults to the row count)
        """
        if matrix is None:
            self._matrix = pd.DataFrame(index=rownames or [], columns=colnames or [],
                                        dtype=float)
        elif isinstance(matrix, pd.DataFrame):
            self._matrix = matrix.astype(float)
            if rownames is not None:
                self._matrix.index = rownames
            if colnames is not None:
                self._matrix.columns = colnames
        else:
            matrix = np.asarray(matrix, dtype=float)
            rows = rownames if rownames is not None else range(matrix.shape[0])
            cols = colnames if colnames is not None else range(matrix.shape[1])
            self._matrix = pd.DataFrame(matrix, index=rows, columns=cols)

        self._n_total = len(self._matrix.index) if n_total is None else n_total

    @classmethod
    def from_rows(cls,
                  rows: Sequence[Mapping[str, Any]],
                  variables: Sequence[str]) -> 'NamedMatrix':
        """
        Parse the selected variables of a data table into a NamedMatrix.

        Args:
            rows: Data table, one mapping per case
            variables: Variable names to extract, in matrix column order

        Returns:
            A NamedMatrix with one row per case and NaN for invalid cells

        Raises:
            ValidationError: if a variable appears in no row of the table
        """
        variables = list(variables)
        if rows:
            present = set()
            for row in rows:
                present.update(row.keys())
            unknown = [v for v in variables if v not in present]
            if unknown:
                raise ValidationError(f"Unknown variables: {', '.join(map(str, unknown))}")

        frame = pd.DataFrame(
            {var: pd.Series([to_float(row.get(var)) for row in rows], dtype=float)
             for var in variables},
            columns=variables
        )
        return cls(frame, rownames=list(range(len(rows))), colnames=variables,
                   n_total=len(rows))

    @property
    def values(self) -> np.ndarray:
        """Get the matrix as a numpy array (a copy)."""
        return self._matrix.to_numpy(dtype=float, copy=True)

    @property
    def n_total(self) -> int:
        """Number of cases in the source table before any deletion."""
        return self._n_total

    @property
    def shape(self):
        return self._matrix.shape

    def rownames(self) -> List[Any]:
        """Get the list of row names."""
        return list(self._matrix.index)

    def colnames(self) -> List[Any]:
        """Get the list of column names."""
        return list(self._matrix.columns)

    def get_col_by_name(self, col_name: Any) -> np.ndarray:
        """
        Get a column of the matrix by name.

        Args:
            col_name: The name of the column

        Returns:
            The column as a numpy array
        """
        if col_name not in self._matrix.columns:
            raise KeyError(f"Column name '{col_name}' not found")
        return self._matrix[col_name].to_numpy(dtype=float, copy=True)

    def valid_values(self, col_name: Any) -> np.ndarray:
        """Finite values of one column, ignoring the other columns."""
        column = self.get_col_by_name(col_name)
        return column[np.isfinite(column)]

    def complete_cases(self) -> 'NamedMatrix':
        """
        Listwise deletion: keep only the rows where every column is finite.

        Returns:
            A new NamedMatrix with the incomplete rows removed
        """
        values = self._matrix.to_numpy(dtype=float)
        mask = np.isfinite(values).all(axis=1) if values.size else \
            np.ones(len(self._matrix.index), dtype=bool)
        subset = self._matrix.loc[mask].copy()
        dropped = len(self._matrix.index) - len(subset.index)
        if dropped:
            logger.debug(f"Listwise deletion dropped {dropped} of {len(self._matrix.index)} cases")
        return NamedMatrix(subset, n_total=self._n_total)

    def __len__(self) -> int:
        return len(self._matrix.index)

    def __repr__(self) -> str:
        return f"NamedMatrix(rows={len(self.rownames())}, cols={len(self.colnames())})"

    def __str__(self) -> str:
        return (f"NamedMatrix with {len(self.rownames())} rows and "
                f"{len(self.colnames())} columns\n{self._matrix}")


def numeric_matrix(rows: Sequence[Mapping[str, Any]],
                   variables: Sequence[str]) -> NamedMatrix:
    """
    Build the listwise-deleted numeric matrix for a variable selection.

    Args:
        rows: Data table
        variables: Selected variable names

    Returns:
        NamedMatrix containing only the complete cases
    """
    return NamedMatrix.from_rows(rows, variables).complete_cases()
