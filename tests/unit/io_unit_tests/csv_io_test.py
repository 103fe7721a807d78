# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Unit Tests for CSV Sample I/O

Tests cover round-trips of single- and multi-channel records, column
layout, and rejection of malformed files.
"""

import logging

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from ctrlopt.io import read_samples, write_samples
from ctrlopt.utils import ValidationError, make_sample_data


@pytest.fixture
def siso_data():
    t = np.arange(50) * 0.02
    rng = np.random.default_rng(0)
    return make_sample_data(t, rng.normal(size=50), rng.normal(size=50))


class TestRoundTrip:
    def test_siso_values_preserved(self, tmp_path, siso_data):
        path = write_samples(tmp_path / "samples.csv", siso_data)
        back = read_samples(path)
        for key in ("t", "u", "y"):
            assert_allclose(back[key], siso_data[key], rtol=1e-14)
        assert np.isclose(back["dt"], 0.02)
        assert back["u"].ndim == 1

    def test_multichannel(self, tmp_path):
        t = np.arange(10) * 0.1
        data = make_sample_data(t, np.ones((10, 2)), np.arange(30.0).reshape(10, 3))
        back = read_samples(write_samples(tmp_path / "mimo.csv", data))
        assert back["u"].shape == (10, 2)
        assert_allclose(back["y"], data["y"])

    def test_column_names(self, tmp_path, siso_data):
        path = write_samples(tmp_path / "samples.csv", siso_data)
        assert list(pd.read_csv(path).columns) == ["time", "input", "output"]

    def test_creates_parent_directories(self, tmp_path, siso_data):
        path = write_samples(tmp_path / "a" / "b" / "samples.csv", siso_data)
        assert path.exists()

    def test_logs_at_info(self, tmp_path, siso_data, caplog):
        with caplog.at_level(logging.INFO, logger="ctrlopt.io.csv_io"):
            read_samples(write_samples(tmp_path / "samples.csv", siso_data))
        messages = [record.getMessage() for record in caplog.records]
        assert any("Wrote 50 samples" in m for m in messages)
        assert any("Read 50 samples" in m for m in messages)


class TestMalformedFiles:
    def test_missing_output_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        pd.DataFrame({"time": [0.0, 1.0], "input": [1.0, 2.0]}).to_csv(path, index=False)
        with pytest.raises(ValueError, match="missing input or output"):
            read_samples(path)

    def test_missing_time_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        pd.DataFrame({"input": [1.0, 2.0], "output": [1.0, 2.0]}).to_csv(path, index=False)
        with pytest.raises(ValidationError, match="time"):
            read_samples(path)

    def test_non_monotonic_time(self, tmp_path):
        path = tmp_path / "bad.csv"
        pd.DataFrame(
            {"time": [0.0, 2.0, 1.0], "input": [0.0] * 3, "output": [0.0] * 3}
        ).to_csv(path, index=False)
        with pytest.raises(ValueError, match="strictly increasing"):
            read_samples(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_samples(tmp_path / "nope.csv")

    def test_invalid_record_not_written(self, tmp_path):
        bad = {"t": np.array([0.0, 1.0]), "u": np.array([1.0]), "y": np.array([1.0, 2.0])}
        with pytest.raises(ValidationError):
            write_samples(tmp_path / "bad.csv", bad)
        assert not (tmp_path / "bad.csv").exists()
