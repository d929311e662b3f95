import os
from flask import Blueprint, current_app, abort, request, url_for, jsonify, Response
from pathlib import Path
from werkzeug.utils import safe_join
from beetsplug.iptvm3u.playlist import EXT_INF, EXT_M3U, PlaylistParserError, dumps, is_playlist_file

MIMETYPE_JSON = 'application/json'
MIMETYPE_MPEGURL = 'audio/mpegurl'

bp = Blueprint('iptvm3u_bp', __name__)

@bp.route('/playlists/index.m3u')
def playlist_index():
    provider = playlist_provider()
    lines = [_m3u_line(relpath) for relpath in provider.playlists()]
    return Response(f"{EXT_M3U}\n{''.join(lines)}", mimetype=MIMETYPE_MPEGURL)

@bp.route('/playlists/', defaults={'path': ''})
@bp.route('/playlists/<path:path>')
def playlists(path):
    provider = playlist_provider()
    abs_path = safe_join(provider.dir, path)
    if abs_path is None or not os.path.exists(abs_path) or not provider.contains(path):
        return abort(404)
    if os.path.isfile(abs_path):
        if not is_playlist_file(abs_path):
            return abort(404)
        return _send_playlist(path)
    return jsonify({
        'directories': [{'name': d} for d in _directories(abs_path)],
        'files': _files(abs_path),
    })

@bp.errorhandler(PlaylistParserError)
def playlist_error(e):
    current_app.logger.warning(f"Cannot parse playlist {request.path}: {e}")
    return jsonify({'error': str(e)}), 422

def playlist_provider():
    return current_app.config['playlist_provider']

def _m3u_line(relpath):
    title = Path(os.path.basename(relpath)).stem
    uri = url_for('iptvm3u_bp.playlists', path=relpath)
    return f"{EXT_INF}:0,{title}\n{request.host_url.rstrip('/')}{uri}\n"

def _send_playlist(relpath):
    playlist = playlist_provider().playlist(relpath).playlist
    if _wants_m3u():
        return Response(dumps(playlist), mimetype=MIMETYPE_MPEGURL)
    return jsonify(playlist.to_dict())

def _wants_m3u():
    fmt = request.args.get('format')
    if fmt:
        return fmt == 'm3u'
    mimetypes = (MIMETYPE_JSON, MIMETYPE_MPEGURL)
    return request.accept_mimetypes.best_match(mimetypes, MIMETYPE_JSON) == MIMETYPE_MPEGURL

def _files(dir):
    provider = playlist_provider()
    l = [f for f in os.listdir(dir) if _is_served_file(provider, dir, f)]
    l.sort()
    return [_playlist_info(dir, f) for f in l]

def _playlist_info(dir, filename):
    relpath = os.path.relpath(os.path.join(dir, filename), playlist_provider().dir)
    playlist = playlist_provider().playlist(relpath)
    try:
        count = playlist.count
    except PlaylistParserError as e:
        current_app.logger.warning(f"Cannot parse playlist {relpath}: {e}")
        count = None
    return {
        'name': playlist.name,
        'path': playlist.id,
        'count': count,
    }

def _is_served_file(provider, dir, filename):
    path = os.path.join(dir, filename)
    return os.path.isfile(path) and is_playlist_file(filename) and provider.contains(os.path.relpath(path, provider.dir))

def _directories(dir):
    l = [d for d in os.listdir(dir) if os.path.isdir(os.path.join(dir, d))]
    l.sort()
    return l
