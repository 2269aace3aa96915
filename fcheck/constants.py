# On-disk layout of an xv6 filesystem image.
#
#   [ boot | super | inodes ... | bitmap ... | data ... | log ... ]
#     0      1       2

BSIZE = 512

ROOTINO = 1
SUPERBLOCK_NO = 1
INODE_START = 2

NDIRECT = 12

DINODE_SIZE = 64
ADDR_SIZE = 4

DIRSIZ = 14
DIRENT_SIZE = 16

# Inode types
T_DIR = 1
T_FILE = 2
T_DEV = 3

VALID_TYPES = (T_DIR, T_FILE, T_DEV)

DOT = '.'
DOTDOT = '..'
