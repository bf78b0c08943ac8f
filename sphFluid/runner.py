# -- SPH Fluid Runner -- #

'''
Command-line entry point for running SPH fluid simulations headless.

Builds a scenario, steps the fluid at a fixed time step, reports
progress on the console, and optionally exports frame data and
Plotly views of the result.

Usage:
    python -m sphFluid                                 # Small cube-in-box
    python -m sphFluid --preset standard               # Larger cube-in-box
    python -m sphFluid --config configs/cube.json      # From JSON config
    python -m sphFluid --slow --steps 10               # All-pairs reference path
    python -m sphFluid --no-export --plot              # Plots only
'''

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import time as timeModule

from sphFluid.sph.fluid import Fluid
from sphFluid.sph.particles import ParticleSystem
from sphFluid import constants as const
from sphFluid.sph.protocols import ConfigurationError, SimulationConfig
from sphFluid.scenarios.cubeInBox import CubeInBoxConfig, createCubeInBox
from sphFluid.export.frameExporter import FrameExporter


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='sphFluid -- SPH fluid simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=['small', 'standard'],
        help='Cube-in-box preset (default: small)',
    )
    parser.add_argument(
        '--steps', type=int, default=None,
        help='Number of steps (overrides preset/config)',
    )
    parser.add_argument(
        '--dt', type=float, default=None,
        help='Time step (overrides preset/config)',
    )
    parser.add_argument(
        '--slow', action='store_true',
        help='Use the all-pairs neighbor search instead of the grid index',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Write Plotly HTML views of the final state and history',
    )
    parser.add_argument(
        '--output-dir', type=str, default='output',
        help='Output directory for exported frames and plots (default: output)',
    )

    return parser


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class SphFluidRunner:
    '''
    Runs an SPH simulation and stores results.

    Handles the full pipeline: scenario setup, simulation loop with
    progress reporting, and optional frame and plot export.
    '''

    def __init__(self) -> None:
        self._exporter: FrameExporter = FrameExporter()

    @property
    def exporter(self) -> FrameExporter:
        '''Frame exporter holding the recorded frames.'''
        return self._exporter

    def runFromConfig(
        self,
        configPath: str,
        overrides: dict | None = None,
        **runOptions,
    ) -> dict:
        '''
        Run the cube-in-box scenario with parameters from a JSON file.

        The 'scenario' section sets the lattice extent and particle
        mass; the 'sph', 'fluid' and 'simulation' sections are read
        by SimulationConfig.fromJson.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file
        overrides : dict, optional
            SimulationConfig fields to replace (e.g. nSteps, timeStep)
        **runOptions :
            Forwarded to run()

        Returns:
        --------
        dict : Simulation results summary
        '''
        simConfig = SimulationConfig.fromJson(configPath)
        if overrides:
            simConfig = dataclasses.replace(simConfig, **overrides)

        with open(configPath, 'r') as f:
            data = json.load(f)
        scenarioSection = data.get('scenario', {})

        scenario = CubeInBoxConfig(
            extent=scenarioSection.get('extent', 2),
            mass=scenarioSection.get('mass', 1.0),
        )
        _, particles = createCubeInBox(scenario)

        return self.run(simConfig, particles, **runOptions)

    def runCubeInBox(self, scenario: CubeInBoxConfig, **runOptions) -> dict:
        '''
        Run a cube-in-box scenario.

        Parameters:
        -----------
        scenario : CubeInBoxConfig
            Scenario configuration
        **runOptions :
            Forwarded to run()

        Returns:
        --------
        dict : Simulation results summary
        '''
        simConfig, particles = createCubeInBox(scenario)
        return self.run(simConfig, particles, **runOptions)

    def run(
        self,
        simConfig: SimulationConfig,
        particles: ParticleSystem,
        scenarioName: str = 'cubeInBox',
        slow: bool = False,
        doExport: bool = True,
        doPlot: bool = False,
        exportDir: str = 'output',
    ) -> dict:
        '''
        Step a fluid through simConfig.nSteps fixed time steps.

        Parameters:
        -----------
        simConfig : SimulationConfig
            Simulation configuration
        particles : ParticleSystem
            Initial particles
        scenarioName : str
            Name used in the banner and output filenames
        slow : bool
            Use stepSlow() (all-pairs search) instead of step()
        doExport : bool
            Whether to export frame data
        doPlot : bool
            Whether to write Plotly HTML views
        exportDir : str
            Output directory for exports

        Returns:
        --------
        dict : Simulation results summary

        Raises:
        -------
        ConfigurationError : If slow is requested for more than
            const.maxAllPairsParticles particles
        '''
        if slow and len(particles) > const.maxAllPairsParticles:
            raise ConfigurationError(
                f'all-pairs search is limited to {const.maxAllPairsParticles} particles, '
                f'got {len(particles)}; drop --slow or use a smaller scenario'
            )

        print()
        print('=' * 62)
        print('  SPHFLUID -- SPH FLUID SIMULATION')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scenario Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENARIO SETUP')
        print('-' * 62)

        fluid = Fluid.fromConfig(particles, simConfig)
        params = fluid.params

        print(f'  Scenario:          {scenarioName:>12s}')
        print(f'  Smoothing Radius:  {simConfig.smoothingRadius:12.4f}')
        print(f'  Rest Density:      {params.restDensity:12.4f}')
        print(f'  Viscosity:         {params.kinematicViscosity:12.2e}')
        print(f'  Stiffness:         {params.stiffness:12.1f}')
        print(f'  Gravity:           {str(params.gravity):>12s}')
        print(f'  Grid:              {simConfig.gridSize:9d}^3 cells')
        print(f'  Movable Particles: {fluid.particles.nMovable:12d}')
        print(f'  Fixed Particles:   {fluid.particles.nFixed:12d}')
        print(f'  Time Step:         {simConfig.timeStep:12.4f}')
        print(f'  Steps:             {simConfig.nSteps:12d}')
        print(f'  Neighbor Search:   {("all-pairs" if slow else "grid"):>12s}')
        print()

        # Record initial frame
        self._exporter.addFrame(fluid.currentState, fluid)

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Step":>8}  {"Time":>8}  {"MaxSpeed":>10}  {"DensErr":>8}  {"MeanY":>10}')
        print(f'  {"":>8}  {"":>8}  {"":>10}  {"(%)":>8}  {"":>10}')
        print('  ' + '-' * 52)

        advance = fluid.stepSlow if slow else fluid.step
        outputInterval = max(1, simConfig.outputInterval)
        printInterval = max(1, simConfig.nSteps // 20)

        wallClockStart = timeModule.time()

        for _ in range(simConfig.nSteps):
            advance(simConfig.timeStep)
            state = fluid.currentState

            if state.step % outputInterval == 0:
                self._exporter.addFrame(state, fluid)

            if state.step % printInterval == 0:
                print(
                    f'  {state.step:8d}  {state.time:8.3f}  {state.maxSpeed:10.4f}  '
                    f'{state.maxDensityError * 100:8.2f}  {state.meanMovablePosition[1]:10.4f}'
                )

        wallClockSeconds = timeModule.time() - wallClockStart

        # Final frame
        finalState = fluid.currentState
        if finalState.step % outputInterval != 0:
            self._exporter.addFrame(finalState, fluid)

        print()
        print('  Simulation complete.')
        print(f'  Total steps:       {finalState.step:8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
        print(f'  Frames recorded:   {self._exporter.nFrames:8d}')
        print()

        #--------------------------------------------------------------------#
        # Export
        #--------------------------------------------------------------------#
        exportPath = None
        if doExport:
            print('-' * 62)
            print('  EXPORTING FRAME DATA')
            print('-' * 62)

            exportPath = self._exporter.export(
                config=simConfig,
                outputDir=exportDir,
                scenarioName=scenarioName,
            )
            print(f'  Exported to: {exportPath}')
            print()

        plotPaths: list[str] = []
        if doPlot:
            plotPaths = self._writePlots(fluid, scenarioName, exportDir)
            for path in plotPaths:
                print(f'  Plot written: {path}')
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Total Mass:        {finalState.totalMass:12.4f}')
        print(f'  Final KE:          {finalState.kineticEnergy:12.6f}')
        print(f'  Max Density Error: {finalState.maxDensityError * 100:10.3f} %')
        print(f'  Max Speed:         {finalState.maxSpeed:12.4f}')
        print(f'  Mean Movable Y:    {finalState.meanMovablePosition[1]:12.4f}')
        print('=' * 62)
        print()

        return {
            'finalState': finalState,
            'fluid': fluid,
            'wallClockSeconds': wallClockSeconds,
            'nFrames': self._exporter.nFrames,
            'exportPath': exportPath,
            'plotPaths': plotPaths,
        }

    def _writePlots(self, fluid: Fluid, scenarioName: str, outputDir: str) -> list[str]:
        '''Write the particle and history figures as HTML.'''
        from sphFluid.visualization.particlePlots import plotHistory, plotParticles

        os.makedirs(outputDir, exist_ok=True)
        particlesPath = os.path.join(outputDir, f'sphFluid_{scenarioName}_particles.html')
        historyPath = os.path.join(outputDir, f'sphFluid_{scenarioName}_history.html')

        plotParticles(fluid.particles, title=f'{scenarioName} -- step {fluid.stepCount}').write_html(particlesPath)
        plotHistory(self._exporter).write_html(historyPath)

        return [particlesPath, historyPath]


#--------------------------------------------------------------------#
# -- CLI Entry Point -- #
#--------------------------------------------------------------------#

def main(argv: list[str] | None = None) -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args(argv)

    runner = SphFluidRunner()
    runOptions = dict(
        slow=args.slow,
        doExport=not args.no_export,
        doPlot=args.plot,
        exportDir=args.output_dir,
    )

    overrides = {}
    if args.steps is not None:
        overrides['nSteps'] = args.steps
    if args.dt is not None:
        overrides['timeStep'] = args.dt

    try:
        if args.config:
            runner.runFromConfig(args.config, overrides=overrides, **runOptions)
        else:
            presets = {
                'small': CubeInBoxConfig.small,
                'standard': CubeInBoxConfig.standard,
            }
            scenario = presets[args.preset]()
            scenario = dataclasses.replace(scenario, **overrides)
            runner.runCubeInBox(scenario, **runOptions)
    except ConfigurationError as exc:
        parser.error(str(exc))


if __name__ == '__main__':
    main()
