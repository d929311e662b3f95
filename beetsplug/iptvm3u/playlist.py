import io
import os
import re
from pathlib import Path
from beets import logging

log = logging.getLogger('beets.iptvm3u')

EXT_M3U = '#EXTM3U'
EXT_INF = '#EXTINF'
EXT_VLC_OPT = '#EXTVLCOPT'

PLAYLIST_EXTENSIONS = ('.m3u', '.m3u8')

_extinf_regex = re.compile(r'#EXTINF:.?[0-9]+', re.IGNORECASE)
_whitespace_regex = re.compile(r'\s', re.ASCII)


class PlaylistParserError(Exception):
    pass


class InvalidHeader(PlaylistParserError):
    def __init__(self, line=None):
        super().__init__(f"Playlist does not start with {EXT_M3U}: {line!r}")
        self.line = line


class NoCurrentItem(PlaylistParserError):
    """Raised when a line refers to an entry that no #EXTINF line opened."""

    def __init__(self, linenum, line):
        super().__init__(f"Line {linenum} has no open {EXT_INF} entry: {line!r}")
        self.linenum = linenum
        self.line = line


class PlaylistItem():
    def __init__(self, title=None, attributes=None, headers=None, url=None, user_agent=None):
        self.title = title
        self.attributes = dict(attributes or {})
        self.headers = dict(headers or {})
        self.url = url
        self.user_agent = user_agent

    def to_dict(self):
        return {
            'title': self.title,
            'attributes': dict(self.attributes),
            'headers': dict(self.headers),
            'url': self.url,
            'userAgent': self.user_agent,
        }

    def __eq__(self, other):
        if not isinstance(other, PlaylistItem):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"PlaylistItem(title={self.title!r}, attributes={self.attributes!r}, "
                f"headers={self.headers!r}, url={self.url!r}, user_agent={self.user_agent!r})")


class Playlist():
    """Ordered, read-only sequence of playlist items."""

    def __init__(self, items=()):
        self._items = tuple(items)

    @property
    def items(self):
        return self._items

    def to_dict(self):
        return {'items': [item.to_dict() for item in self._items]}

    def __iter__(self):
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __eq__(self, other):
        if not isinstance(other, Playlist):
            return NotImplemented
        return self._items == other._items

    def __repr__(self):
        return f"Playlist({list(self._items)!r})"


def strip_quotes(value):
    return value.replace('"', '').strip()


def is_extended_m3u(line):
    return line is not None and line.startswith(EXT_M3U)


def extract_title(line):
    """Returns the text after the last comma of an #EXTINF line.

    A line without any comma yields the whole line.
    """
    return strip_quotes(line.split(',')[-1])


def extract_attributes(line):
    """Returns the key/value attributes of an #EXTINF line.

    #EXTINF:-1 tvg-id="1234" group-title="Kids" tvg-logo="url/to/logo", Title
    results in {'tvg-id': '1234', 'group-title': 'Kids', 'tvg-logo': 'url/to/logo'}.
    Quotes are removed before splitting, so values must not contain whitespace.
    """
    attrs_str = strip_quotes(_extinf_regex.sub('', line)).split(',')[0]
    attrs = {}
    for token in _whitespace_regex.split(attrs_str):
        pair = token.split('=')
        if len(pair) == 2:
            attrs[pair[0]] = strip_quotes(pair[1])
    return attrs


def extract_url(line):
    if not line:
        return None
    return strip_quotes(line.split('|')[0])


def extract_url_parameter(line, key):
    """Returns a parameter appended to a URL line after a '|'.

    http://host/video.mp4|User-Agent=Mozilla&Referer=http://ref/
    results in 'Mozilla' for the key 'user-agent'.
    """
    params = strip_quotes(line.split('|', 1)[-1])
    m = re.search(f"{re.escape(key)}=(\\w[^&]*)", params, re.IGNORECASE | re.ASCII)
    return m.group(1) if m else None


def extract_tag_value(line, key):
    # greedy: the value runs until the end of the line
    m = re.search(f"{re.escape(key)}=(.*)", line, re.IGNORECASE | re.ASCII)
    return strip_quotes(m.group(1)) if m else None


class PlaylistParser():
    def __init__(self, encoding='utf-8', errors='replace'):
        self.encoding = encoding
        self.errors = errors

    def parse(self, source):
        if isinstance(source, bytes):
            return self.parse_stream(io.BytesIO(source))
        if isinstance(source, str):
            return self.parse_string(source)
        if isinstance(source, os.PathLike):
            return self.parse_file(source)
        if hasattr(source, 'read'):
            return self.parse_stream(source)
        raise TypeError(f"Cannot parse playlist from {type(source).__name__}")

    def parse_file(self, path):
        log.debug('Parsing playlist file {}', path)
        return self.parse_stream(open(path, 'rb'))

    def parse_string(self, content):
        return self.parse_stream(io.BytesIO(content.encode(self.encoding, self.errors)))

    def parse_stream(self, stream):
        with stream:
            if isinstance(stream, io.TextIOBase):
                lines = stream
            else:
                lines = io.TextIOWrapper(stream, encoding=self.encoding, errors=self.errors, newline=None)
            playlist = self.parse_lines(line.rstrip('\r\n') for line in lines)
        log.debug('Parsed playlist with {} items', len(playlist))
        return playlist

    def parse_lines(self, lines):
        lines = iter(lines)
        header = next(lines, None)
        if not is_extended_m3u(header):
            raise InvalidHeader(header)

        items = []
        current = 0
        for linenum, line in enumerate(lines, start=2):
            if not line:
                continue
            if line.startswith(EXT_INF):
                items.append(PlaylistItem(extract_title(line), extract_attributes(line)))
            elif line.startswith(EXT_VLC_OPT):
                item = _item_at(items, current, linenum, line)
                item.user_agent = extract_tag_value(line, 'http-user-agent')
                referrer = extract_tag_value(line, 'http-referrer')
                if referrer is not None:
                    item.headers['referrer'] = referrer
            elif not line.startswith('#'):
                item = _item_at(items, current, linenum, line)
                item.url = extract_url(line)
                referrer = extract_url_parameter(line, 'referer')
                if referrer is not None:
                    item.headers['referrer'] = referrer
                item.user_agent = extract_url_parameter(line, 'user-agent')
                current += 1
            else:
                log.debug('Skipping unsupported line {}: {}', linenum, line)
        return Playlist(items)


def _item_at(items, index, linenum, line):
    if index >= len(items):
        raise NoCurrentItem(linenum, line)
    return items[index]


_default_parser = PlaylistParser()


def parse(source):
    return _default_parser.parse(source)


def parse_file(path):
    return _default_parser.parse_file(path)


def dumps(playlist):
    return ''.join(_m3u_lines(playlist))


def dump(playlist, fp):
    for line in _m3u_lines(playlist):
        fp.write(line)


def _m3u_lines(playlist):
    yield f"{EXT_M3U}\n"
    for item in playlist:
        attrs = ''.join(f' {k}="{v}"' for k, v in item.attributes.items())
        yield f"{EXT_INF}:-1{attrs},{item.title or ''}\n"
        if item.url is None:
            continue
        params = []
        if item.user_agent is not None:
            params.append(f"User-Agent={item.user_agent}")
        referrer = item.headers.get('referrer')
        if referrer is not None:
            params.append(f"Referer={referrer}")
        if params:
            yield f"{item.url}|{'&'.join(params)}\n"
        else:
            yield f"{item.url}\n"


class PlaylistFile():
    def __init__(self, id, path, parser):
        self.id = id
        self.path = path
        self.name = Path(path).stem
        self._parser = parser
        self._playlist = None

    @property
    def playlist(self):
        if self._playlist is None:
            self._playlist = self._parser.parse_file(self.path)
        return self._playlist

    @property
    def count(self):
        return len(self.playlist)


class PlaylistProvider():
    def __init__(self, dir, parser=None):
        self.dir = os.path.normpath(dir)
        self.parser = parser or _default_parser

    def playlist(self, relpath):
        return PlaylistFile(relpath, self._resolve(relpath), self.parser)

    def playlists(self):
        result = []
        for root, dirs, files in os.walk(self.dir):
            for f in files:
                relpath = os.path.relpath(os.path.join(root, f), self.dir)
                if is_playlist_file(f) and self.contains(relpath):
                    result.append(relpath)
        result.sort()
        return result

    def contains(self, relpath):
        """Tells whether relpath, symlinks resolved, stays within the playlist dir."""
        root = os.path.realpath(self.dir)
        path = os.path.realpath(os.path.join(root, relpath))
        return os.path.commonpath([root, path]) == root

    def _resolve(self, relpath):
        if not self.contains(relpath):
            raise ValueError(f"Playlist path {relpath!r} is outside of {self.dir}")
        return os.path.realpath(os.path.join(self.dir, relpath))


def is_playlist_file(filename):
    return filename.endswith(PLAYLIST_EXTENSIONS)
