from setuptools import find_packages, setup


extras_require = {}

extras_require["test"] = [
    'pytest>=7.4,<9.0'
]

extras_require["all"] = [
    *extras_require["test"],
]


setup(
    name='orgchart',
    version='1.0.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Persistence of organizational charts in document, tabular, relational and binary formats',
    entry_points={
        'console_scripts': [
            'orgchart = orgchart.cli.main:main',
        ],
    },
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    install_requires=[
        'pydantic>=2.0,<3.0',
        'python-dotenv>=1.0.0,<2.0'
    ],
    extras_require=extras_require,
    python_requires=">=3.10"
)
