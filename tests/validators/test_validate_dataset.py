"""
Tests for validate_dataset in fdrbench._validators.
"""
# noinspection PyProtectedMember
from fdrbench._validators import validate_dataset

import pandas as pd
import numpy as np

import pytest


def test_validate_dataset_returns_the_same_table(small_dataset: pd.DataFrame) -> None:
    assert validate_dataset(name="dataset", value=small_dataset) is small_dataset


def test_validate_dataset_accepts_missing_p_values() -> None:
    table: pd.DataFrame = pd.DataFrame(data={"p_value": [0.1, np.nan, 0.9]})
    assert validate_dataset(name="dataset", value=table) is table


def test_validate_dataset_rejects_non_frames_and_missing_columns() -> None:
    """
    Test that non-DataFrame inputs raise TypeError and missing required columns raise ValueError.
    """
    with pytest.raises(expected_exception=TypeError):
        validate_dataset(name="dataset", value={"p_value": [0.1]})
    with pytest.raises(expected_exception=ValueError):
        validate_dataset(name="dataset", value=pd.DataFrame(data={"pvalue": [0.1]}))
    with pytest.raises(expected_exception=ValueError):
        validate_dataset(
            name="dataset", value=pd.DataFrame(data={"p_value": [0.1]}), required_columns=("p_value", "ind_covariate")
        )


@pytest.mark.parametrize(argnames="p_values", argvalues=[[0.1, 1.5], [-0.2, 0.3], [0.1, np.inf]])
def test_validate_dataset_rejects_invalid_p_values(p_values: list[float]) -> None:
    with pytest.raises(expected_exception=ValueError):
        validate_dataset(name="dataset", value=pd.DataFrame(data={"p_value": p_values}))


def test_validate_dataset_checks_truth_only_when_requested() -> None:
    """
    Test that malformed truth labels raise, unless truth validation is disabled.
    """
    table: pd.DataFrame = pd.DataFrame(data={"p_value": [0.1, 0.2], "truth": [1, 3]})
    with pytest.raises(expected_exception=ValueError):
        validate_dataset(name="dataset", value=table)
    assert validate_dataset(name="dataset", value=table, truth_column=None) is table
