from pathlib import Path
from typing import List, Optional, Tuple
import sys
import time
import numpy as np

from pylops.optimization.basesolver import Solver
from pylops.utils import NDArray

from rtm_mpi.GlobalField import GlobalField
from rtm_mpi.io.fields import checkpoint_filename, write_field
from rtm_mpi.optimization.linesearch import cg_direction, cg_stepsize
from rtm_mpi.signalprocessing.Filters import laplacian_filter

_units = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


class LSRTM(Solver):
    r"""Least-squares reverse-time migration

    Iteratively refine a reflectivity model with non-linear conjugate
    gradient iterations, using the distributed migration of the data
    residual as gradient.

    Parameters
    ----------
    Op : :obj:`rtm_mpi.waveeqprocessing.MPIMigration`
        Distributed migration

    Notes
    -----
    Each iteration is made of the following stages:

    - **gradient** (all ranks): the current model is broadcasted, the
      residual of every shot is migrated and the contributions are reduced
      and normalized by the illumination at the root, giving
      :math:`\mathbf{g}_1`;
    - **direction** (root): :math:`\mathbf{d} = \mathbf{g}_1` at the first
      iteration, :math:`\mathbf{d} = \mathbf{g}_1 + \beta \mathbf{d}`
      afterwards;
    - **step** (root): bounded step length :math:`\lambda`;
    - **update** (root): :math:`\mathbf{m} = \mathbf{m} + \lambda \mathbf{d}`;
    - **filter and checkpoint** (root): the model is filtered with a
      Laplacian and written to disk, and :math:`\mathbf{g}_0 = \mathbf{g}_1`.

    A fixed number of iterations is run, unless a tolerance on the norm of the
    gradient is provided.

    """

    def _print_setup(self) -> None:
        self._print_solver(nbar=65)
        strpar = f"niter = {self.niter}\tmaxfraction = {self.maxfraction:4e}\tbeta = {self.beta}"
        if self.tol is not None:
            strpar += f"\ttol = {self.tol:10e}"
        print(strpar)
        print("-" * 65 + "\n")
        head1 = "    Itn          lambda             gnorm"
        print(head1)
        sys.stdout.flush()

    def _print_step(self) -> None:
        msg = f"{self.iiter:6g}     {self.steps[-1]:11.4e}       {self.cost[-1]:11.4e}"
        print(msg)
        sys.stdout.flush()

    def memory_usage(
            self,
            show: bool = False,
            unit: str = "B",
    ) -> float:
        """Memory used by each rank for the model, gradients and direction"""
        nbytes = 4 * self.Op.shape[1] * np.dtype(self.Op.dtype).itemsize
        memuse = nbytes / _units[unit]
        if show and self.Op.rank == 0:
            print(f"LSRTM uses {memuse:.2f} {unit} per process")
        return memuse

    def setup(
            self,
            x0: Optional[GlobalField] = None,
            niter: Optional[int] = None,
            maxfraction: float = 0.1,
            beta: str = "PR",
            tol: Optional[float] = None,
            mute: int = 0,
            laplace: bool = True,
            checkpoint: Optional[str] = None,
            diagnostics: Optional[str] = None,
            show: bool = False,
    ) -> GlobalField:
        r"""Setup solver

        Parameters
        ----------
        x0 : :obj:`rtm_mpi.GlobalField`, optional
            Initial model (zero model if ``None``), only meaningful at the root
        niter : :obj:`int`, optional
            Number of iterations (default to ``None`` in case a user wants to
            manually step over the solver)
        maxfraction : :obj:`float`, optional
            Maximum relative update of the model at each iteration
        beta : :obj:`str`, optional
            Conjugate-gradient formula (``PR`` or ``FR``)
        tol : :obj:`float`, optional
            Tolerance on the norm of the gradient (``None`` to always run
            ``niter`` iterations)
        mute : :obj:`int`, optional
            Number of shallow samples muted in the gradient
        laplace : :obj:`bool`, optional
            Filter the model with a Laplacian after each update
        checkpoint : :obj:`str`, optional
            File where the model is written after each iteration; an
            iteration-tagged copy is also written (see
            :func:`rtm_mpi.io.checkpoint_filename`)
        diagnostics : :obj:`str`, optional
            Directory where the gradient (``g1_itNNN.su``) and the search
            direction (``dr_itNNN.su``) are written after each iteration
        show : :obj:`bool`, optional
            Display setup log

        Returns
        -------
        x : :obj:`rtm_mpi.GlobalField`
            Initial model

        Raises
        ------
        ValueError
            If the root of ``x0`` differs from the root of the velocity of
            ``Op``, where the gradient is reduced

        """
        self.niter = niter
        self.maxfraction = maxfraction
        self.beta = beta
        self.tol = tol
        self.mute = mute
        self.laplace = laplace
        self.checkpoint = checkpoint
        self.diagnostics = diagnostics
        self.rank = self.Op.rank

        root = self.Op.velocity.root
        if x0 is None:
            x = GlobalField(self.Op.survey.global_shape,
                            base_comm=self.Op.base_comm,
                            root=root, dtype=self.Op.dtype)
        else:
            if x0.root != root:
                raise ValueError(f"Initial model has root {x0.root}, "
                                 f"the gradient is reduced at {root}")
            x = x0.copy()
        self.g0 = x.zeros_like()
        self.dr = x.zeros_like()

        # create variables to track the gradient norm, steps and iterations
        self.cost: List = []
        self.steps: List = []
        self.checkpoints: List = []
        self.converged = False
        self.iiter = 0

        if show and self.rank == 0:
            self._print_setup()
        return x

    def step(self, x: GlobalField,
             show: bool = False
             ) -> GlobalField:
        r"""Run one step of solver

        Parameters
        ----------
        x : :obj:`rtm_mpi.GlobalField`
            Current model to be updated by a step of LSRTM
        show : :obj:`bool`, optional
            Display iteration log

        Returns
        -------
        x : :obj:`rtm_mpi.GlobalField`
            Updated model

        """
        g1 = self.Op.gradient(x, mute=self.mute)
        lamda = 0.
        if x.is_root:
            cg_direction(g1, self.g0, self.dr, self.iiter, kind=self.beta)
            lamda = cg_stepsize(self.dr, x, self.maxfraction)
            x += lamda * self.dr
            if self.laplace:
                laplacian_filter(x.local_array)
            if self.checkpoint is not None:
                self._write_checkpoint(x)
            if self.diagnostics is not None:
                self._write_diagnostics(g1)
        self.g0 = g1

        # every rank takes the same stop decision from the root values
        gnorm, lamda = x._bcast_object(x.base_comm,
                                       (float(g1.norm()), lamda) if x.is_root else None,
                                       root=x.root)
        self.iiter += 1
        self.cost.append(gnorm)
        self.steps.append(lamda)
        if self.tol is not None and gnorm < self.tol:
            self.converged = True
        if show and self.rank == 0:
            self._print_step()
        return x

    def _write_checkpoint(self, x: GlobalField) -> None:
        survey = self.Op.survey
        filename = checkpoint_filename(self.checkpoint, self.iiter)
        write_field(filename, x.local_array, dz=survey.dz, dx=survey.dx)
        write_field(self.checkpoint, x.local_array, dz=survey.dz, dx=survey.dx)
        self.checkpoints.append(filename)

    def _write_diagnostics(self, g1: GlobalField) -> None:
        survey = self.Op.survey
        for name, field in (("g1", g1), ("dr", self.dr)):
            filename = checkpoint_filename(Path(self.diagnostics) / f"{name}.su", self.iiter)
            write_field(filename, field.local_array, dz=survey.dz, dx=survey.dx)

    def run(
            self,
            x: GlobalField,
            niter: Optional[int] = None,
            show: bool = False,
            itershow: Tuple[int, int, int] = (10, 10, 10),
    ) -> GlobalField:
        r"""Run solver

        Parameters
        ----------
        x : :obj:`rtm_mpi.GlobalField`
            Current model to be updated by multiple steps of LSRTM
        niter : :obj:`int`, optional
            Number of iterations. Can be set to ``None`` if already
            provided in the setup call
        show : :obj:`bool`, optional
            Display logs
        itershow : :obj:`tuple`, optional
            Display set log for the first N1 steps, last N2 steps,
            and every N3 steps in between where N1, N2, N3 are the
            three element of the list.

        Returns
        -------
        x : :obj:`rtm_mpi.GlobalField`
            Estimated model

        """

        niter = self.niter if niter is None else niter
        if niter is None:
            raise ValueError("niter must not be None")
        while self.iiter < niter and not self.converged:
            showstep = (
                True
                if show
                and (
                    self.iiter < itershow[0]
                    or niter - self.iiter < itershow[1]
                    or self.iiter % itershow[2] == 0
                )
                else False
            )
            x = self.step(x, showstep)
            self.callback(x)
        return x

    def finalize(self, show: bool = False) -> None:
        r"""Finalize solver

        Parameters
        ----------
        show : :obj:`bool`, optional
            Display finalize log

        """

        self.tend = time.time()
        self.telapsed = self.tend - self.tstart
        self.cost = np.array(self.cost)
        self.steps = np.array(self.steps)
        if show and self.rank == 0:
            self._print_finalize(nbar=65)

    def solve(
            self,
            x0: Optional[GlobalField] = None,
            niter: int = 10,
            maxfraction: float = 0.1,
            beta: str = "PR",
            tol: Optional[float] = None,
            mute: int = 0,
            laplace: bool = True,
            checkpoint: Optional[str] = None,
            diagnostics: Optional[str] = None,
            show: bool = False,
            itershow: Tuple[int, int, int] = (10, 10, 10),
    ) -> Tuple[GlobalField, int, NDArray]:
        r"""Run entire solver

        Parameters
        ----------
        x0 : :obj:`rtm_mpi.GlobalField`, optional
            Initial model (zero model if ``None``)
        niter : :obj:`int`, optional
            Number of iterations
        maxfraction : :obj:`float`, optional
            Maximum relative update of the model at each iteration
        beta : :obj:`str`, optional
            Conjugate-gradient formula (``PR`` or ``FR``)
        tol : :obj:`float`, optional
            Tolerance on the norm of the gradient
        mute : :obj:`int`, optional
            Number of shallow samples muted in the gradient
        laplace : :obj:`bool`, optional
            Filter the model with a Laplacian after each update
        checkpoint : :obj:`str`, optional
            File where the model is written after each iteration
        diagnostics : :obj:`str`, optional
            Directory where gradient and search direction are written after
            each iteration
        show : :obj:`bool`, optional
            Display logs
        itershow : :obj:`tuple`, optional
            Display set log for the first N1 steps, last N2 steps,
            and every N3 steps in between where N1, N2, N3 are the
            three element of the list.

        Returns
        -------
        x : :obj:`rtm_mpi.GlobalField`
            Estimated model (meaningful at the root only)
        iit : :obj:`int`
            Number of executed iterations
        cost : :obj:`numpy.ndarray`
            History of the norm of the gradient

        """

        x = self.setup(x0=x0, niter=niter, maxfraction=maxfraction, beta=beta,
                       tol=tol, mute=mute, laplace=laplace,
                       checkpoint=checkpoint, diagnostics=diagnostics,
                       show=show)
        x = self.run(x, niter, show=show, itershow=itershow)
        self.finalize(show)
        return x, self.iiter, self.cost
