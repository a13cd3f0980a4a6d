"""
Command line programs
=====================

The subpackage cli provides the programs installed with rtm_mpi. Parameters
are given as ``key=value`` arguments.

    mpirtm                          MPI reverse-time migration.
    mpilsrtm                        MPI least-squares reverse-time migration.
    bin2su                          Conversion of binary files to SU.

"""
