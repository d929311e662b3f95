import pytest


SAMPLE_PLAYLIST = '''#EXTM3U url-tvg="http://epg/guide.xml"
#EXTINF:-1 tvg-id="kids.1" group-title="Kids" tvg-logo="http://logo/kids.png",Kids Channel
#EXTVLCOPT:http-user-agent=VLC/3.0
#EXTVLCOPT:http-referrer=http://ref/
http://host/kids.m3u8

#EXTINF:-1 tvg-id="news.1" group-title="News",News
http://host/news.m3u8|User-Agent=Mozilla&Referer=http://news-ref/
'''


@pytest.fixture
def sample_playlist():
    return SAMPLE_PLAYLIST


@pytest.fixture
def playlist_dir(tmp_path):
    (tmp_path / 'tv.m3u').write_text(SAMPLE_PLAYLIST, encoding='utf-8')
    (tmp_path / 'broken.m3u8').write_text('#EXTINF:-1,No header\nhttp://host/x\n', encoding='utf-8')
    (tmp_path / 'notes.txt').write_text('not a playlist', encoding='utf-8')
    sub = tmp_path / 'radio'
    sub.mkdir()
    (sub / 'fm.m3u8').write_text('#EXTM3U\n#EXTINF:-1,FM\nhttp://host/fm.mp3\n', encoding='utf-8')
    return tmp_path


@pytest.fixture
def outside_link(playlist_dir, tmp_path_factory):
    outside = tmp_path_factory.mktemp('outside') / 'secret.m3u'
    outside.write_text('#EXTM3U\n#EXTINF:-1,Secret\nhttp://host/secret\n', encoding='utf-8')
    link = playlist_dir / 'link.m3u'
    link.symlink_to(outside)
    return link
