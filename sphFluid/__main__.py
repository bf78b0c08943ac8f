from sphFluid.runner import main

main()
