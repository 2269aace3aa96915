import collections
import logging
import struct

from .constants import (ADDR_SIZE, BSIZE, DINODE_SIZE, DIRENT_SIZE, DIRSIZ,
                        INODE_START, NDIRECT, SUPERBLOCK_NO, T_DIR)
from .errors import ImageError

logger = logging.getLogger(__name__)

SUPERBLOCK = struct.Struct('<4I')
DINODE = struct.Struct(f'<4hI{NDIRECT + 1:d}I')
DIRENT = struct.Struct(f'<H{DIRSIZ:d}s')
BYTE = struct.Struct('<B')

Superblock = collections.namedtuple('Superblock',
                                    ['size', 'nblocks', 'ninodes', 'nlog'])

Geometry = collections.namedtuple('Geometry',
                                  ['block_size', 'nindirect', 'ipb', 'bpb',
                                   'dpb'])

DirEnt = collections.namedtuple('DirEnt', ['inum', 'name'])


class DInode(collections.namedtuple('DInode',
                                    ['inum', 'type', 'major', 'minor',
                                     'nlink', 'size', 'addrs'])):
    __slots__ = ()

    @property
    def allocated(self):
        return self.type != 0

    @property
    def is_dir(self):
        return self.type == T_DIR

    @property
    def direct(self):
        return self.addrs[:NDIRECT]

    @property
    def indirect(self):
        return self.addrs[NDIRECT]


def geometry(block_size=BSIZE):
    if block_size <= 0 or block_size % DINODE_SIZE:
        raise ValueError(
            f'block size must be a positive multiple of {DINODE_SIZE:d}, '
            f'got {block_size:d}')
    return Geometry(block_size=block_size,
                    nindirect=block_size // ADDR_SIZE,
                    ipb=block_size // DINODE_SIZE,
                    bpb=block_size * 8,
                    dpb=block_size // DIRENT_SIZE)


class Image:
    """Read-only view of a mapped filesystem image.

    Every accessor decodes fixed-width fields at a computed offset and raises
    ImageError rather than reading past the end of the buffer.
    """

    def __init__(self, buf, superblock, geom):
        self.buf = buf
        self.superblock = superblock
        self.geometry = geom
        self._indirect = struct.Struct(f'<{geom.nindirect:d}I')
        self.ninodeblocks = superblock.ninodes // geom.ipb + 1
        self.nbitmapblocks = superblock.size // geom.bpb + 1
        self.bitmap_start = INODE_START + self.ninodeblocks
        self.firstdatablock = (INODE_START + self.ninodeblocks +
                               self.nbitmapblocks)

    @classmethod
    def from_buffer(cls, buf, block_size=BSIZE):
        geom = geometry(block_size)
        offset = SUPERBLOCK_NO * geom.block_size
        if len(buf) < offset + SUPERBLOCK.size:
            raise ImageError(
                f'image is {len(buf):d} bytes, too short to hold a superblock')
        sb = Superblock(*SUPERBLOCK.unpack_from(buf, offset))
        image = cls(buf, sb, geom)
        logger.debug('%s', image.describe())
        return image

    def describe(self):
        sb = self.superblock
        return (f'size {sb.size:d} nblocks {sb.nblocks:d} '
                f'ninodes {sb.ninodes:d} nlog {sb.nlog:d}; '
                f'inodes at block {INODE_START:d} ({self.ninodeblocks:d}), '
                f'bitmap at block {self.bitmap_start:d} '
                f'({self.nbitmapblocks:d}), '
                f'data at block {self.firstdatablock:d}')

    def _unpack(self, fmt, offset, what):
        if offset < 0 or offset + fmt.size > len(self.buf):
            raise ImageError(f'{what} at byte {offset:d} lies past the end '
                             f'of the {len(self.buf):d} byte image')
        return fmt.unpack_from(self.buf, offset)

    def _block_offset(self, b):
        return b * self.geometry.block_size

    def valid_address(self, b):
        return b in self.data_blocks()

    def data_blocks(self):
        return range(self.firstdatablock,
                     self.firstdatablock + self.superblock.nblocks)

    def inode(self, inum):
        if not 0 <= inum < self.superblock.ninodes:
            raise IndexError(f'inode {inum:d} out of range')
        offset = (self._block_offset(INODE_START) +
                  inum * DINODE_SIZE)
        fields = self._unpack(DINODE, offset, f'inode {inum:d}')
        return DInode(inum, *fields[:5], addrs=fields[5:])

    def inodes(self, start=0):
        for inum in range(start, self.superblock.ninodes):
            yield self.inode(inum)

    def allocated_inodes(self):
        return (inode for inode in self.inodes() if inode.allocated)

    def indirect_addresses(self, b):
        return self._unpack(self._indirect, self._block_offset(b),
                            f'indirect block {b:d}')

    def dirents(self, b):
        base = self._block_offset(b)
        for i in range(self.geometry.dpb):
            inum, raw = self._unpack(DIRENT, base + i * DIRENT_SIZE,
                                     f'directory block {b:d}')
            yield DirEnt(inum, raw.split(b'\0', 1)[0].decode('latin-1'))

    def bitmap_bit(self, b):
        offset = self._block_offset(self.bitmap_start) + b // 8
        byte, = self._unpack(BYTE, offset, f'bitmap bit {b:d}')
        return bool(byte & (1 << (b % 8)))

    def inode_blocks(self, inode):
        """Every block an inode uses, including its indirect block."""
        for b in inode.direct:
            if b:
                yield b
        if inode.indirect:
            yield inode.indirect
            for b in self.indirect_addresses(inode.indirect):
                if b:
                    yield b

    def content_blocks(self, inode):
        """Blocks holding an inode's content, without its indirect block."""
        for b in inode.direct:
            if b:
                yield b
        if inode.indirect:
            for b in self.indirect_addresses(inode.indirect):
                if b:
                    yield b

    def directory_entries(self, inode):
        for b in self.content_blocks(inode):
            yield from self.dirents(b)
