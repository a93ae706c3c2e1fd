from xssrecon.cli import main

main()
