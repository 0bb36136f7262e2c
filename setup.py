from setuptools import setup
import os


def main():
    this_directory = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(this_directory, 'README.rst'), 'r') as f:
        long_description = f.read()

    setup(name='pycrn',
          version='0.1.0',
          description='Compiler from chemical reaction network notation to '
                      'ODE, SDE and jump process functions',
          long_description=long_description,
          long_description_content_type='text/x-rst',
          packages=['pycrn', 'pycrn.generator', 'pycrn.examples',
                    'pycrn.testing', 'pycrn.tests'],
          python_requires='>=3.8',
          install_requires=['numpy', 'scipy>=1.1', 'sympy>=1.6', 'networkx',
                            'ply'],
          extras_require={'test': ['pytest']},
          keywords=['chemical', 'reaction', 'network', 'kinetics', 'ode',
                    'sde', 'gillespie'],
          classifiers=[
            'Development Status :: 3 - Alpha',
            'Intended Audience :: Science/Research',
            'License :: OSI Approved :: BSD License',
            'Operating System :: OS Independent',
            'Programming Language :: Python :: 3',
            'Topic :: Scientific/Engineering :: Bio-Informatics',
            'Topic :: Scientific/Engineering :: Chemistry',
            'Topic :: Scientific/Engineering :: Mathematics',
            ],
          )


if __name__ == '__main__':
    main()
