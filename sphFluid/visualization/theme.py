# -- Visualization Theme -- #

'''
Dark-mode theme shared by the sphFluid particle and history plots.
'''

# Plotly template
TEMPLATE = 'plotly_dark'

# Particle traces
FIXED_PARTICLE = '#888888'
SPEED_COLORSCALE = 'Blues'

# History panels
HEIGHT_LINE = '#42A5F5'
ENERGY_LINE = '#FFA726'
DENSITY_ERROR_LINE = '#EF5350'
