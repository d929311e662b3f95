import setuptools

with open('README.md', 'r') as fh:
    long_description = fh.read()

setuptools.setup(
    name='beets-iptvm3u',
    version='0.1.0',
    author='Max Goltzsche',
    description='Parse IPTV Extended M3U playlists and serve them via HTTP',
    long_description=long_description,
    long_description_content_type='text/markdown',
    url='https://github.com/mgoltzsche/beets-iptvm3u',
    packages=setuptools.find_namespace_packages(include=['beetsplug.*']),
    include_package_data=True,
    classifiers=[
        'Programming Language :: Python :: 3.8',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
    install_requires=[
        'beets',
        'flask',
        'flask-cors',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
