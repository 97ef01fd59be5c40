#!/usr/bin/env python

import setuptools

setuptools.setup(
    name="volmask",
    version="0.3.0",
    description="Slice viewing and binary mask painting for NIfTI brain-imaging volumes.",
    packages=setuptools.find_packages(exclude=("tests", "tests.*")),
    package_data={"volmask": ["configs/*.yaml"]},
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    install_requires=['numpy>=1.18.2',
                      'nibabel>=4.0',
                      'PyYAML>=5.3',
                      'termcolor>=1.1',
                      'colorama>=0.4; platform_system=="Windows"',
                      ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.10',
)
