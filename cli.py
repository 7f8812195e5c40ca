# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Science Solutions International Laboratory, Inc.
# gnuplot-1d-export/cli.py
from pathlib import Path
import argparse
import logging
import meshio

from gnuplot import gnuplot
from mesh1d.mesh1d import Mesh1D


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export a 1D mesh and its point data as a gnuplot script")
    parser.add_argument("input", help="mesh file readable by meshio (line cells)")
    parser.add_argument("output", help="gnuplot script path; data goes to OUTPUT_data")
    parser.add_argument("--informat", help="meshio file_format of the input (optional)")
    parser.add_argument(
        "--field",
        action="append",
        dest="fields",
        help="point_data array to plot, repeatable (default: all but 'id')",
    )
    parser.add_argument("--title", default="")
    parser.add_argument("--grid", action="store_true", help="mark element boundaries with x2tics and a grid")
    parser.add_argument("--png", action="store_true", help="render to OUTPUT.png instead of an interactive window")
    parser.add_argument("--precision", type=int, default=gnuplot.DEFAULT_PRECISION)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    in_path = Path(args.input)
    out_path = Path(args.output)

    options = gnuplot.GnuPlotOption.NONE
    if args.grid:
        options |= gnuplot.GnuPlotOption.GRID_ON
    if args.png:
        options |= gnuplot.GnuPlotOption.PNG_OUTPUT

    try:
        mesh = Mesh1D(meshio.read(in_path, file_format=args.informat))
        values, names = mesh.point_data_columns(args.fields)
    except (meshio.ReadError, KeyError, ValueError, IndexError) as e:
        raise SystemExit(f"{in_path}: {e}")

    writer = gnuplot.GnuPlotIO(mesh, title=args.title, options=options, precision=args.precision)
    try:
        if names:
            writer.write_nodal_data(out_path, values, names)
        else:
            # No point data: mesh only
            writer.write(out_path)
    except gnuplot.GnuPlotError as e:
        raise SystemExit(str(e))


if __name__ == "__main__":
    main()
