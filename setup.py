from setuptools import find_packages, setup

package_name = 'fabrik3d'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['test']),
    python_requires='>=3.9',
    install_requires=['setuptools', 'numpy'],
    zip_safe=True,
    maintainer='yuuki',
    maintainer_email='yuuzena@gmail.com',
    description='Multi-chain FABRIK inverse kinematics solver with ball, hinge and rotor constraints',
    license='TODO: License declaration',
    extras_require={
        'test': [
            'pytest',
        ],
        'plot': [
            'matplotlib',
        ],
    },
    entry_points={
        'console_scripts': [
            'fabrik3d_demo = fabrik3d.fabrik_demo_runner:main',
        ],
    },
)
