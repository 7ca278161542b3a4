# SPDX-License-Identifier: LGPL-3.0-or-later
from setuptools import setup, find_packages

setup(
    name="vimsh",
    version="0.1.0",
    description="Interactive vSphere shell: connect to ESX/vCenter and watch tasks",
    python_requires=">=3.8",
    packages=find_packages(include=["vimsh", "vimsh.*"]),
    install_requires=[l.strip() for l in open("requirements.txt", encoding="utf-8") if l.strip() and not l.startswith("#")],
    extras_require={"test": ["pytest>=7"]},
    entry_points={"console_scripts": ["vimsh=vimsh.__main__:main"]},
)
