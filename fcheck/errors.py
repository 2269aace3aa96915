import collections
import enum


class ImageError(ValueError):
    """The image is too small to hold a structure the checker has to read."""


class Rule(enum.Enum):
    BAD_INODE = 'bad inode'
    BAD_DIRECT = 'bad direct address in inode'
    BAD_INDIRECT = 'bad indirect address in inode'
    NO_ROOT = 'root directory does not exist'
    BAD_FORMAT = 'directory not properly formatted'
    MARKED_FREE = 'address used by inode but marked free in bitmap'
    NOT_IN_USE = 'bitmap marks block in use but it is not in use'
    DIRECT_REUSED = 'direct address used more than once'
    INDIRECT_REUSED = 'indirect address used more than once'
    UNREFERENCED = 'inode marked use but not found in a directory'
    REFERRED_FREE = 'inode referred to in directory but marked free'
    BAD_NLINK = 'bad reference count for file'
    DIR_LINKED_TWICE = 'directory appears more than once in file system'


class Violation(collections.namedtuple('Violation', ['rule', 'inum', 'block'],
                                       defaults=(None, None))):
    __slots__ = ()

    def message(self):
        return f'ERROR: {self.rule.value}.'

    def detail(self):
        parts = [self.rule.name]
        if self.inum is not None:
            parts.append(f'inode {self.inum:d}')
        if self.block is not None:
            parts.append(f'block {self.block:d}')
        return ' '.join(parts)
