from setuptools import setup, find_packages

setup(
    name='kubeprep',
    version='0.1.0',
    packages=find_packages(exclude=['kubeprep.tests']),
    include_package_data=True,
    package_data={
        'kubeprep.modules.kubeadm.installer': ['templates/*.j2'],
    },
    install_requires=[
        'typer',
        'pydantic>=2',
        'pyyaml',
        'jinja2',
        'kubernetes',
        'python-dotenv',
        'requests'
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'kubeprep=kubeprep.cli:app'
        ]
    },
    description='Provision an Ubuntu 24.04 host as a kubeadm Kubernetes node',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)
