"""
Command line front end.

    imagerocket run photos/ --outdir cropped
    imagerocket run scan.png --config crop.yml --save-pipeline saved.json
    imagerocket classes
    imagerocket dump --pipeline saved.json
"""

import os
import sys
import json
import asyncio
import logging
import argparse

from . import logconfig
from .constants import C
from .config import load_config
from .document import DocumentError,default_pipeline,dump_document,load_document_file,save_document
from .image import NotImageError,SurfaceImageBuffer,image_read,image_write
from .node import ImageProcessingNode
from .serializer import global_serializer
from .viewer import ImageViewer

logger = logging.getLogger(__name__)


def image_paths(root):
    """Generator for the image files under root, in sort order within each directory.
    A root that is not a directory is returned as is."""
    if not os.path.isdir(root):
        yield root
        return
    for (dirpath, dirnames, filenames) in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            if os.path.splitext(fname)[1].lower() in C.IMAGE_EXTENSIONS:
                yield os.path.join(dirpath, fname)


def output_path(outdir, template, path, counter):
    (stem, ext) = os.path.splitext(os.path.basename(path))
    return os.path.join(outdir, template.format(stem=stem, ext=ext, counter=counter))


def get_pipeline(args, config):
    path = args.pipeline or config['pipeline']
    if path:
        pipeline = load_document_file(path)
        if not isinstance(pipeline, ImageProcessingNode):
            raise DocumentError(f"{path}: {pipeline!r} cannot process images")
        return pipeline
    return default_pipeline(config)


async def process_paths(pipeline, roots, outdir, template):
    """Run every image under roots through the pipeline. Returns the number of failures."""
    failures = 0
    counter = 0
    for root in roots:
        for path in image_paths(root):
            try:
                buffer = SurfaceImageBuffer(image_read(path))
            except (NotImageError, FileNotFoundError) as e:
                print(f"Cannot read '{path}': {e}", file=sys.stderr)
                failures += 1
                continue
            result = await pipeline.process_image(buffer)
            if result.width == 0 or result.height == 0:
                print(f"'{path}': nothing left after cropping", file=sys.stderr)
                failures += 1
                continue
            counter += 1
            out = output_path(outdir, template, path, counter)
            image_write(out, result)
            print(f"{path} -> {out} {result.width}x{result.height}")
    return failures


def run(args, config):
    pipeline = get_pipeline(args, config)
    if args.show:
        for node in getattr(pipeline, 'nodes', []):
            if isinstance(node, ImageViewer):
                node.model_bridge.model['show'] = True
    failures = asyncio.run(process_paths(pipeline, args.paths, args.outdir, args.template))
    if args.save_pipeline:
        save_document(args.save_pipeline, pipeline)
    if args.stats and hasattr(pipeline, 'print_stats'):
        pipeline.print_stats()
    return 1 if failures else 0


def classes(args, config):
    for (name, cls) in global_serializer.enumerate_classes():
        print(f"{name:24} {cls.__module__}.{cls.__qualname__}")
    return 0


def dump(args, config):
    print(json.dumps(dump_document(get_pipeline(args, config)), indent=2))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="imagerocket",
                                     description="Crop scanned images to their content and add a uniform border",
                                     formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.add_argument("--config", help='Yaml configuration file')
    logconfig.add_argument(parser, loglevel_default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("run", help="process images",
                       formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    p.add_argument("paths", nargs="+", help="Image files or directories to process")
    p.add_argument("--outdir", default="out", help="Where to write the results")
    p.add_argument("--template", default=C.DEFAULT_OUTPUT_TEMPLATE,
                   help="Output file name; may use {stem}, {ext} and {counter}")
    p.add_argument("--pipeline", help="Pipeline document to run instead of the default pipeline")
    p.add_argument("--save-pipeline", help="Write the pipeline document here when done")
    p.add_argument("--show", help="Show each result in a window", action='store_true')
    p.add_argument("--stats", help="Print per-node timing", action='store_true')
    p.set_defaults(func=run)

    p = sub.add_parser("classes", help="list the registered node classes")
    p.set_defaults(func=classes)

    p = sub.add_parser("dump", help="print the pipeline document",
                       formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    p.add_argument("--pipeline", help="Pipeline document to print instead of the default pipeline")
    p.set_defaults(func=dump)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    logconfig.setup(args.loglevel or config['loglevel'])
    return args.func(args, config)


if __name__=="__main__":
    sys.exit(main())
