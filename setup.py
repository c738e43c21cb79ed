from setuptools import setup, find_packages

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="ddnsup",
    version="0.1.0",
    author="Dominick C. Pastore",
    author_email="ddnsup@dcpx.org",
    description="Dynamic DNS record updater",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/dominickpastore/ddnsup/",
    license="GPL-3.0-or-later",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 or later "
        "(GPLv3+)",
        "Topic :: Internet :: Name Service (DNS)",
    ],

    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "requests",
        "urllib3",
        "netifaces",
        "dnspython>=2.0",
        "tldextract",
        "importlib_metadata; python_version<'3.10'",
    ],
    python_requires=">=3.8",
    extras_require={
        "docs": ["sphinx"],
        "test": [
            "flake8",
            "pytest",
            "pytest-cov",
            "pytest-mock",
        ]
    },

    entry_points={
        "console_scripts": [
            "ddnsup=ddnsup.main:main",
        ],
    },
)
