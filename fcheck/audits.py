import collections
import logging

from .constants import DOT, DOTDOT, ROOTINO, T_DIR, T_FILE, VALID_TYPES
from .errors import Rule, Violation

logger = logging.getLogger(__name__)


def check_image(image):
    """Run every audit in order and return the first Violation, or None."""
    for audit in AUDITS:
        logger.debug('running %s', audit.__name__)
        violation = audit(image)
        if violation is not None:
            logger.debug('%s failed: %s', audit.__name__, violation.detail())
            return violation
    return None


def inode_audit(image):
    for inode in image.inodes():
        if not inode.allocated:
            if inode.inum == ROOTINO:
                return Violation(Rule.NO_ROOT, ROOTINO)
            continue

        if inode.type not in VALID_TYPES:
            return Violation(Rule.BAD_INODE, inode.inum)

        for b in inode.direct:
            if b and not image.valid_address(b):
                return Violation(Rule.BAD_DIRECT, inode.inum, b)

        if inode.indirect:
            if not image.valid_address(inode.indirect):
                return Violation(Rule.BAD_INDIRECT, inode.inum, inode.indirect)
            for b in image.indirect_addresses(inode.indirect):
                if b and not image.valid_address(b):
                    return Violation(Rule.BAD_INDIRECT, inode.inum, b)

        if inode.inum == ROOTINO and not inode.is_dir:
            return Violation(Rule.NO_ROOT, ROOTINO)

        if inode.is_dir:
            violation = directory_format_audit(image, inode)
            if violation is not None:
                return violation

        for b in image.inode_blocks(inode):
            if not image.bitmap_bit(b):
                return Violation(Rule.MARKED_FREE, inode.inum, b)

    if image.superblock.ninodes <= ROOTINO:
        return Violation(Rule.NO_ROOT, ROOTINO)
    return None


def directory_format_audit(image, inode):
    """Check the first '.' and '..' entries of a directory.

    '.' must name the directory itself. '..' names the directory itself on
    the root and only there; both ways of getting that wrong are reported as a
    missing root.
    """
    dot = dotdot = None
    for entry in image.directory_entries(inode):
        if dot is None and entry.name == DOT:
            dot = entry.inum
            if dot != inode.inum:
                return Violation(Rule.BAD_FORMAT, inode.inum)
        if dotdot is None and entry.name == DOTDOT:
            dotdot = entry.inum
            if (dotdot == inode.inum) != (inode.inum == ROOTINO):
                return Violation(Rule.NO_ROOT, inode.inum)
        if dot is not None and dotdot is not None:
            return None
    return Violation(Rule.BAD_FORMAT, inode.inum)


def bitmap_audit(image):
    in_use = set()
    for inode in image.allocated_inodes():
        in_use.update(image.inode_blocks(inode))

    for b in image.data_blocks():
        if image.bitmap_bit(b) and b not in in_use:
            return Violation(Rule.NOT_IN_USE, block=b)
    return None


def address_audit(image):
    direct = collections.Counter()
    indirect = collections.Counter()
    for inode in image.allocated_inodes():
        direct.update(b for b in inode.direct if b)
        if inode.indirect:
            indirect.update(b for b in image.indirect_addresses(inode.indirect)
                            if b)

    # Ascending block order; a block used twice both ways reports direct.
    for b in sorted(direct.keys() | indirect.keys()):
        if direct[b] > 1:
            return Violation(Rule.DIRECT_REUSED, block=b)
        if indirect[b] > 1:
            return Violation(Rule.INDIRECT_REUSED, block=b)
    return None


def count_references(image):
    """Count the directory entries naming each inode, walking from the root.

    Inodes 0 and 1 start at one. A directory already walked is not walked
    again, so a cycle only shows up as an extra reference.
    """
    ninodes = image.superblock.ninodes
    references = collections.Counter({0: 1, ROOTINO: 1})
    visited = set()
    worklist = [ROOTINO]
    while worklist:
        inum = worklist.pop()
        if inum in visited:
            continue
        visited.add(inum)
        directory = image.inode(inum)
        if directory.type != T_DIR:
            continue
        for entry in image.directory_entries(directory):
            if entry.inum == 0 or entry.name in (DOT, DOTDOT):
                continue
            references[entry.inum] += 1
            if entry.inum >= ninodes or entry.inum in visited:
                continue
            if image.inode(entry.inum).is_dir:
                worklist.append(entry.inum)
    return references


def directory_audit(image):
    references = count_references(image)

    for inode in image.inodes(start=2):
        count = references[inode.inum]
        if inode.allocated and count == 0:
            return Violation(Rule.UNREFERENCED, inode.inum)
        if count > 0 and not inode.allocated:
            return Violation(Rule.REFERRED_FREE, inode.inum)
        if inode.type == T_FILE and inode.nlink != count:
            return Violation(Rule.BAD_NLINK, inode.inum)
        if inode.type == T_DIR and count > 1:
            return Violation(Rule.DIR_LINKED_TWICE, inode.inum)

    # Entries naming an inode past the end of the table.
    strays = sorted(inum for inum in references
                    if inum >= image.superblock.ninodes)
    if strays:
        return Violation(Rule.REFERRED_FREE, strays[0])
    return None


AUDITS = (inode_audit, bitmap_audit, address_audit, directory_audit)
