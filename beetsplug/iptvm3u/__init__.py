import json
from flask import Flask, redirect, url_for
from beets import config
from beets.plugins import BeetsPlugin
from beets.ui import Subcommand, UserError, print_
from optparse import OptionParser
from beetsplug.web import ReverseProxied
from beetsplug.iptvm3u.routes import bp
from beetsplug.iptvm3u.playlist import PlaylistParser, PlaylistParserError, PlaylistProvider


class IptvM3UPlugin(BeetsPlugin):
    def __init__(self):
        super().__init__()
        self.config.add(
            {
                'host': '127.0.0.1',
                'port': 8340,
                'cors': '',
                'cors_supports_credentials': False,
                'reverse_proxy': False,
                'playlist_dir': None,
                'encoding': 'utf-8',
                'encoding_errors': 'replace',
            }
        )

    def commands(self):
        p = OptionParser()
        p.add_option('-d', '--debug', action='store_true', default=False, help='debug mode')
        serve = Subcommand('iptvm3u', parser=p, help='serve the IPTV playlists via HTTP')
        serve.func = self._run_server

        sp = OptionParser(usage='%prog [options] FILE...')
        sp.add_option('--json', action='store_true', default=False, help='print as JSON')
        show = Subcommand('iptvm3u-show', parser=sp, help='print the entries of IPTV playlist files')
        show.func = self._show
        return [serve, show]

    def _run_server(self, lib, opts, args):
        app = create_app(
            encoding=self.config['encoding'].as_str(),
            errors=self.config['encoding_errors'].as_str(),
        )
        self._configure_app(app)
        app.run(
            host=self.config['host'].as_str(),
            port=self.config['port'].get(int),
            debug=opts.debug,
            threaded=True,
        )

    def _show(self, lib, opts, args):
        if not args:
            raise UserError('no playlist file given')
        parser = PlaylistParser(
            self.config['encoding'].as_str(),
            self.config['encoding_errors'].as_str(),
        )
        for path in args:
            try:
                playlist = parser.parse_file(path)
            except (OSError, PlaylistParserError) as e:
                raise UserError(f"cannot parse {path}: {e}")
            self._log.debug('{} items in {}', len(playlist), path)
            if opts.json:
                print_(json.dumps(playlist.to_dict(), indent=2))
            else:
                for item in playlist:
                    print_(f"{item.title}\t{item.url}")

    def _configure_app(self, app):
        if self.config['cors']:
            self._log.info('Enabling CORS with origin {}', self.config['cors'])
            from flask_cors import CORS

            app.config['CORS_ALLOW_HEADERS'] = 'Content-Type'
            app.config['CORS_RESOURCES'] = {
                r'/*': {'origins': self.config['cors'].get(str)}
            }
            CORS(
                app,
                supports_credentials=self.config['cors_supports_credentials'].get(bool),
            )

        if self.config['reverse_proxy']:
            app.wsgi_app = ReverseProxied(app.wsgi_app)

def create_app(playlist_dir=None, encoding='utf-8', errors='replace'):
    app = Flask(__name__)

    if not playlist_dir:
        playlist_dir = config['iptvm3u']['playlist_dir'].get()
    if not playlist_dir:
        playlist_dir = config['smartplaylist']['playlist_dir'].get()

    app.config['playlist_provider'] = PlaylistProvider(playlist_dir, PlaylistParser(encoding, errors))

    @app.route('/')
    def home():
        return redirect(url_for('iptvm3u_bp.playlists'))

    app.register_blueprint(bp)

    return app
