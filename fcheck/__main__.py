import argparse
import contextlib
import logging
import mmap
import os
import sys

from .audits import check_image
from .constants import BSIZE
from .errors import ImageError
from .image import Image, geometry


class ArgumentParser(argparse.ArgumentParser):
    # Usage errors exit 1 like every other failure.
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f'{self.prog}: error: {message}\n')


def block_size(value):
    try:
        return geometry(int(value)).block_size
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def make_parser():
    parser = ArgumentParser(
        prog='fcheck',
        description='Check an xv6 filesystem image for consistency.')
    parser.add_argument('image', help='filesystem image file')
    parser.add_argument('--block-size', type=block_size, default=BSIZE,
                        help=f'block size in bytes (default {BSIZE:d})')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='trace the checks on stderr')
    return parser


@contextlib.contextmanager
def mapped(path):
    with open(path, 'rb') as f:
        # mmap refuses empty files
        if os.fstat(f.fileno()).st_size == 0:
            yield b''
            return
        with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as buf:
            yield buf


def main(argv=None):
    args = make_parser().parse_args(argv)
    logging.basicConfig(
        format='%(name)s: %(message)s',
        level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        with mapped(args.image) as buf:
            violation = check_image(Image.from_buffer(buf, args.block_size))
    except ImageError as e:
        print(f'fcheck: {e}', file=sys.stderr)
        return 1
    except OSError as e:
        print(f'{args.image}: {e.strerror or e}', file=sys.stderr)
        return 1

    if violation is not None:
        print(violation.message())
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
