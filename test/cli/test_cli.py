# SPDX-FileCopyrightText: Copyright (c) 2023 - 2026 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the meshgrading command line interface."""

import logging

import pytest

from meshgrading.cli import _config_from_args, build_parser, main

_REQUIRED = ["-x", "0.2", "-y", "0.5", "-i", "in.ply", "-o", "out.ply"]


class TestArguments:
    """Tests for argument parsing and the derived configuration."""

    def test_defaults(self):
        args = build_parser().parse_args(_REQUIRED + ["-s", "left"])
        config = _config_from_args(args)

        assert config.mode == "adaptive"
        assert config.iterations == 10
        assert config.error == 0.2
        assert config.left_anchor is None and config.right_anchor is None
        assert config.gamma_left == config.gamma_right == 0.15

    def test_short_options(self):
        args = build_parser().parse_args(
            _REQUIRED
            + ["-s", "right", "-e", "0.05", "-l", "7.5", "-r", "-7", "-g", "0.3", "-h", "0.4"]
        )
        config = _config_from_args(args)

        assert config.side == "right"
        assert config.error == 0.05
        assert (config.left_anchor, config.right_anchor) == (7.5, -7.0)
        assert (config.gamma_left, config.gamma_right) == (0.3, 0.4)

    def test_uniform_mode_uses_min_length(self):
        args = build_parser().parse_args(_REQUIRED + ["--mode", "uniform", "-n", "3"])
        config = _config_from_args(args)

        assert config.mode == "uniform"
        assert config.min_length == config.max_length == 0.2
        assert config.iterations == 3

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["-x", "0.2", "-i", "in.ply", "-o", "out.ply", "-s", "left"],
            _REQUIRED + ["-s", "up"],
            _REQUIRED,
            ["-x", "0", "-y", "0.5", "-i", "in.ply", "-o", "out.ply", "-s", "left"],
        ],
        ids=["nothing", "no-max", "bad-side", "no-side", "zero-length"],
    )
    def test_usage_errors_exit_with_1(self, argv, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(argv)
        assert excinfo.value.code == 1
        assert "usage: meshgrading" in capsys.readouterr().err

    def test_invalid_combination_returns_1(self, caplog):
        argv = ["-x", "0.5", "-y", "0.2", "-i", "in.ply", "-o", "out.ply", "-s", "left"]
        with caplog.at_level(logging.ERROR):
            assert main(argv) == 1
        assert "must not exceed" in caplog.text


class TestRun:
    """End-to-end runs on mesh files."""

    @pytest.fixture
    def input_file(self, tmp_path):
        pytest.importorskip("pyvista")
        from meshgrading.io import write_mesh
        from meshgrading.primitives.surfaces import sphere_icosahedral

        path = tmp_path / "head.ply"
        write_mesh(sphere_icosahedral.load(subdivisions=1), path)
        return path

    def test_adaptive(self, input_file, tmp_path, caplog):
        from meshgrading.io import read_mesh
        from meshgrading.validation import validate_mesh

        output = tmp_path / "graded.ply"
        argv = ["-x", "0.15", "-y", "0.6", "-s", "left", "-n", "2", "-v", "-b"]
        with caplog.at_level(logging.INFO):
            status = main(argv + ["-i", str(input_file), "-o", str(output)])

        assert status == 0
        assert validate_mesh(read_mesh(output))["valid"]
        assert "side: left" in caplog.text
        assert "gamma scaling left/right: 0.15/0.15" in caplog.text
        assert "Faces before remeshing: 80" in caplog.text

    def test_uniform(self, input_file, tmp_path):
        output = tmp_path / "uniform.ply"
        argv = ["-x", "0.3", "-y", "0.3", "--mode", "uniform", "-n", "2"]
        assert main(argv + ["-i", str(input_file), "-o", str(output)]) == 0
        assert output.exists()

    def test_missing_input(self, tmp_path, caplog):
        pytest.importorskip("pyvista")
        argv = ["-x", "0.2", "-y", "0.5", "-s", "left"]
        with caplog.at_level(logging.ERROR):
            status = main(argv + ["-i", str(tmp_path / "nope.ply"), "-o", "out.ply"])
        assert status == 1
        assert "Failed to read mesh" in caplog.text

    def test_without_pyvista(self, tmp_path, monkeypatch, caplog):
        """A missing I/O backend is reported as an error, not a traceback."""
        from meshgrading.io import io_pyvista

        def _unavailable():
            raise ImportError("Mesh file I/O requires pyvista")

        monkeypatch.setattr(io_pyvista, "_import_pyvista", _unavailable)
        argv = ["-x", "0.2", "-y", "0.5", "-s", "left"]
        with caplog.at_level(logging.ERROR):
            status = main(argv + ["-i", str(tmp_path / "head.ply"), "-o", "out.ply"])
        assert status == 1
        assert "requires pyvista" in caplog.text
