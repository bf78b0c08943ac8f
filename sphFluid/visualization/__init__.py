# -- Visualization Subpackage -- #

'''
Plotly-based interactive views of particle state and run history.
'''

from sphFluid.visualization.particlePlots import plotParticles, plotHistory
