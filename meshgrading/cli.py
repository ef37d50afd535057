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

"""Command line interface: grade a head mesh for HRTF simulation.

Example
-------
::

    meshgrading -x 0.5 -y 10 -s left -i head.ply -o head_left.ply -v
"""

import argparse
import logging
import sys
from typing import Sequence

from meshgrading.config import LENGTH_FLOOR, RemeshingConfig
from meshgrading.errors import ConfigurationError, InvalidMeshError, MeshIOError
from meshgrading.io import read_mesh, write_mesh
from meshgrading.remeshing import remesh
from meshgrading.surface import SurfaceMesh

logger = logging.getLogger(__name__)

# Gamma values above the sentinel select the default of 0.15
_GAMMA_UNSET = 2.0

_EPILOG = """\
Explicit ear channel coordinates of 0 mean "unknown"; the channel is then
estimated from the mesh extent and the gamma factor. The estimated positions
should have slightly smaller absolute values than the actual ear channel
entrances. Use -v to echo the gamma factors in use.

Reference: T. Palm, S. Koch, F. Brinkmann, and M. Alexa, "Curvature-adaptive
mesh grading for numerical approximation of head-related transfer functions,"
in DAGA 2021, Vienna, Austria, pp. 1111-1114.
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Print the full usage and exit with status 1 on any argument error."""

    def error(self, message: str):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    # -h is the right gamma factor, so only the long --help is available
    parser = _ArgumentParser(
        prog="meshgrading",
        description="Curvature-adaptive (or uniform) remeshing of head meshes.",
        epilog=_EPILOG,
        add_help=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--help", action="help", help="show this help message and exit")
    parser.add_argument(
        "-x", "--min-length", type=float, required=True, help="minimum edge length"
    )
    parser.add_argument(
        "-y", "--max-length", type=float, required=True, help="maximum edge length"
    )
    parser.add_argument(
        "-e",
        "--max-error",
        type=float,
        default=0.0,
        help="maximum geometric error (default: the minimum edge length)",
    )
    parser.add_argument(
        "-s",
        "--side",
        choices=("left", "right"),
        help="side with high mesh resolution (required in adaptive mode)",
    )
    parser.add_argument(
        "-l",
        "--left",
        type=float,
        default=0.0,
        help="lateral coordinate of the left ear channel entrance (0: unknown)",
    )
    parser.add_argument(
        "-r",
        "--right",
        type=float,
        default=0.0,
        help="lateral coordinate of the right ear channel entrance (0: unknown)",
    )
    parser.add_argument(
        "-g",
        "--gamma-left",
        type=float,
        default=_GAMMA_UNSET,
        help="scaling factor for estimating the left ear channel (default 0.15)",
    )
    parser.add_argument(
        "-h",
        "--gamma-right",
        type=float,
        default=_GAMMA_UNSET,
        help="scaling factor for estimating the right ear channel (default 0.15)",
    )
    parser.add_argument("-i", "--input", required=True, help="input mesh file")
    parser.add_argument("-o", "--output", required=True, help="output mesh file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="echo parameters and statistics"
    )
    parser.add_argument(
        "-b", "--binary", action="store_true", help="write binary output"
    )
    parser.add_argument(
        "--mode",
        choices=("adaptive", "uniform"),
        default="adaptive",
        help="adaptive grading, or uniform remeshing at the minimum edge length",
    )
    parser.add_argument(
        "-n", "--iterations", type=int, default=10, help="remeshing iterations"
    )
    parser.add_argument(
        "--feature-angle",
        type=float,
        default=None,
        help="preserve edges with a dihedral angle above this (degrees)",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> RemeshingConfig:
    if args.mode == "uniform":
        return RemeshingConfig(
            min_length=args.min_length,
            max_length=args.min_length,
            iterations=args.iterations,
            mode="uniform",
            feature_angle=args.feature_angle,
        )
    return RemeshingConfig(
        min_length=args.min_length,
        max_length=args.max_length,
        max_error=args.max_error,
        iterations=args.iterations,
        mode="adaptive",
        side=args.side,
        left_anchor=args.left if args.left != 0.0 else None,
        right_anchor=args.right if args.right != 0.0 else None,
        gamma_left=args.gamma_left,
        gamma_right=args.gamma_right,
        feature_angle=args.feature_angle,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface; return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.min_length < LENGTH_FLOOR or args.max_length < LENGTH_FLOOR:
        parser.error(f"edge lengths must be at least {LENGTH_FLOOR}")
    if args.mode == "adaptive" and args.side is None:
        parser.error("the side (-s) is required in adaptive mode")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    try:
        config = _config_from_args(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    ### Echo input
    logger.info(f"input: {args.input}")
    logger.info(f"output: {args.output}")
    logger.info(f"mode: {config.mode}")
    if config.mode == "adaptive":
        logger.info(f"side: {config.side}")
    logger.info(f"min. edge length: {config.min_length}")
    logger.info(f"max. edge length: {config.max_length}")
    logger.info(f"max. error: {config.error}")
    if config.mode == "adaptive" and args.left == 0.0 and args.right == 0.0:
        logger.info(f"gamma scaling left/right: {config.gamma_left}/{config.gamma_right}")

    ### Load, remesh, write
    try:
        mesh = read_mesh(args.input)
    except (MeshIOError, ImportError) as e:
        logger.error(str(e))
        return 1

    surface = SurfaceMesh.from_mesh(mesh)
    try:
        stats = remesh(surface, config)
    except InvalidMeshError as e:
        logger.error(f"Cannot remesh {args.input}: {e}")
        return 1

    logger.info(f"Faces before remeshing: {stats.n_faces_before}")
    logger.info(f"Faces after remeshing:  {stats.n_faces_after}")

    try:
        write_mesh(surface.to_mesh()[0], args.output, binary=args.binary)
    except (MeshIOError, ImportError) as e:
        logger.error(str(e))
        return 1

    return 0
