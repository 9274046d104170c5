from sysagent.main import main

main()
