from setuptools import setup, find_packages

setup(
    name='pydbn',
    version='0.1.0',
    description='Restricted Boltzmann Machines and Deep Belief Networks '
                'trained with Contrastive Divergence. Class interfaces are sklearn-like.',
    packages=find_packages(exclude=['tests']),
    zip_safe=False,
    include_package_data=True,
    platforms='any',
    license='MIT',
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
