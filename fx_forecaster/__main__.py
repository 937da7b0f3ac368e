from fx_forecaster.cli.main import main

main()
