import unittest

from fcheck.audits import check_image
from fcheck.constants import (DINODE_SIZE, DIRENT_SIZE, NDIRECT, ROOTINO,
                              T_DIR)
from fcheck.errors import ImageError
from fcheck.image import DINODE, DIRENT, SUPERBLOCK, Image, geometry

from .imagebuilder import ImageBuilder


class LayoutTest(unittest.TestCase):

    def test_regions(self):
        fs = ImageBuilder(size=1024, ninodes=200, nlog=30)
        image = Image.from_buffer(fs.build())
        self.assertEqual(image.superblock.size, 1024)
        self.assertEqual(image.superblock.ninodes, 200)
        self.assertEqual(image.superblock.nlog, 30)
        self.assertEqual(image.ninodeblocks, 26)
        self.assertEqual(image.nbitmapblocks, 1)
        self.assertEqual(image.firstdatablock, 29)
        self.assertEqual(image.data_blocks(), range(29, 29 + 1024 - 29 - 30))

    def test_geometry(self):
        g = geometry(512)
        self.assertEqual(g.nindirect, 128)
        self.assertEqual(g.ipb, 8)
        self.assertEqual(g.bpb, 4096)
        self.assertEqual(g.dpb, 32)

    def test_record_sizes(self):
        self.assertEqual(DINODE.size, DINODE_SIZE)
        self.assertEqual(DIRENT.size, DIRENT_SIZE)
        self.assertEqual(SUPERBLOCK.size, 16)

    def test_bad_block_size(self):
        with self.assertRaises(ValueError):
            geometry(100)
        with self.assertRaises(ValueError):
            geometry(0)

    def test_too_short_for_superblock(self):
        with self.assertRaises(ImageError):
            Image.from_buffer(b'\0' * 520)
        with self.assertRaises(ImageError):
            Image.from_buffer(b'')

    def test_superblock_exactly_fits(self):
        image = Image.from_buffer(b'\0' * 528)
        self.assertEqual(image.superblock, (0, 0, 0, 0))

    def test_describe(self):
        image = Image.from_buffer(ImageBuilder().build())
        self.assertIn('data at block 12', image.describe())


class DecodeTest(unittest.TestCase):

    def setUp(self):
        self.fs = ImageBuilder()
        self.dir = self.fs.mkdir(ROOTINO, 'directory-name')
        self.file = self.fs.create(self.dir, 'f', nblocks=NDIRECT + 2)
        self.image = Image.from_buffer(self.fs.build())

    def test_inode(self):
        inode = self.image.inode(self.file)
        self.assertTrue(inode.allocated)
        self.assertFalse(inode.is_dir)
        self.assertEqual(list(inode.direct),
                         self.fs.inode(self.file)['addrs'][:NDIRECT])
        self.assertEqual(inode.indirect,
                         self.fs.inode(self.file)['addrs'][NDIRECT])
        self.assertEqual(inode.size, (NDIRECT + 2) * 512)

    def test_inode_out_of_table(self):
        with self.assertRaises(IndexError):
            self.image.inode(self.fs.ninodes)

    def test_unallocated_inode(self):
        self.assertFalse(self.image.inode(self.fs.ninodes - 1).allocated)

    def test_indirect_addresses(self):
        addrs = self.image.indirect_addresses(self.image.inode(self.file).indirect)
        self.assertEqual(len(addrs), 128)
        self.assertEqual(list(addrs[:2]), self.fs.indirect_entries[self.file])
        self.assertFalse(any(addrs[2:]))

    def test_inode_blocks(self):
        inode = self.image.inode(self.file)
        blocks = list(self.image.inode_blocks(inode))
        self.assertEqual(len(blocks), NDIRECT + 3)
        self.assertEqual(blocks[NDIRECT], inode.indirect)
        self.assertNotIn(inode.indirect,
                         list(self.image.content_blocks(inode)))

    def test_full_width_name(self):
        entries = list(self.image.directory_entries(self.image.inode(ROOTINO)))
        self.assertEqual(entries[0], (ROOTINO, '.'))
        self.assertEqual(entries[1], (ROOTINO, '..'))
        # 14 bytes, no terminating NUL
        self.assertEqual(entries[2], (self.dir, 'directory-name'[:14]))
        self.assertEqual(entries[3], (0, ''))

    def test_bitmap_bit(self):
        self.assertTrue(self.image.bitmap_bit(0))
        self.assertTrue(self.image.bitmap_bit(self.fs.firstdatablock))
        self.assertFalse(self.image.bitmap_bit(self.fs.size - 1))

    def test_valid_address(self):
        self.assertFalse(self.image.valid_address(self.fs.firstdatablock - 1))
        self.assertTrue(self.image.valid_address(self.fs.firstdatablock))
        self.assertTrue(self.image.valid_address(self.fs.size - 1))
        self.assertFalse(self.image.valid_address(self.fs.size))

    def test_log_region_is_not_a_valid_address(self):
        fs = ImageBuilder(nlog=10)
        image = Image.from_buffer(fs.build())
        last_data = fs.firstdatablock + fs.nblocks - 1
        self.assertTrue(image.valid_address(last_data))
        self.assertFalse(image.valid_address(last_data + 1))
        self.assertFalse(image.valid_address(fs.size - 1))


class TruncatedImageTest(unittest.TestCase):

    def test_missing_data_blocks(self):
        fs = ImageBuilder()
        data = fs.build()[:fs.firstdatablock * 512]
        with self.assertRaises(ImageError):
            check_image(Image.from_buffer(data))

    def test_inode_table_cut_short(self):
        fs = ImageBuilder()
        data = fs.build()[:3 * 512]
        with self.assertRaises(ImageError):
            check_image(Image.from_buffer(data))

    def test_partial_directory_entry(self):
        fs = ImageBuilder()
        d = fs.orphan(T_DIR)
        fs.link(ROOTINO, 'tail', d)
        fs.extend(d)
        fs.entries[d] = [(d, '.')]
        data = fs.build()
        end = fs.inode(d)['addrs'][0] * 512 + DIRENT_SIZE + 3
        image = Image.from_buffer(data[:end])
        with self.assertRaises(ImageError):
            list(image.directory_entries(image.inode(d)))
