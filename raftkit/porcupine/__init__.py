"""Linearizability checker for concurrent operation histories, with HTML reports."""