from setuptools import setup
from codecs import open
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file.
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='pgpsop',
    version='0.1.0', # XXX parse
    description='Stateless OpenPGP decrypt command built on PGPy.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Information Technology',
        'Intended Audience :: System Administrators',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)',
        'Programming Language :: Python :: 3',
    ],
    keywords='OpenPGP PGP SOP',

    packages=['pgpsop'],
    python_requires='>=3.8',

    install_requires=["pgpy>=0.6.0", "cryptography", "sop<0.5"],
    extras_require={"test": ["pytest"]},
    entry_points={
        'console_scripts': ['pgpsop=pgpsop.cli:main'],
    },
)
